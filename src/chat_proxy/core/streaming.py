"""
Streaming relay from an upstream provider to the caller.

Upstream bytes are decoded incrementally and forwarded as soon as they
arrive. The wire format (server-sent events for both providers) is
passed through untouched.
"""

import codecs
import logging
from contextlib import aclosing
from typing import AsyncIterable, AsyncIterator, Optional

import anyio
import httpx

logger = logging.getLogger(__name__)


async def decode_chunks(
    chunks: AsyncIterable[bytes],
    encoding: str = "utf-8",
) -> AsyncIterator[str]:
    """
    Decode a byte stream into text fragments, one per non-empty decode.

    A multi-byte character split across chunks is held in the decoder
    until its remaining bytes arrive.
    """
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")

    async for chunk in chunks:
        text = decoder.decode(chunk)
        if text:
            yield text

    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail


async def relay_stream(
    response: httpx.Response,
    provider: Optional[str] = None,
) -> AsyncIterator[str]:
    """
    Relay an open streamed upstream response as decoded text.

    The upstream response is closed on every exit path: normal
    completion, upstream read errors, and the caller going away
    mid-stream (generator closed or task cancelled).
    """
    forwarded = 0
    completed = False
    try:
        async with aclosing(decode_chunks(response.aiter_bytes())) as fragments:
            async for fragment in fragments:
                forwarded += 1
                yield fragment
        completed = True
    finally:
        if not completed:
            logger.info(
                f"Stream from {provider or 'upstream'} aborted after {forwarded} fragments"
            )
        with anyio.CancelScope(shield=True):
            await response.aclose()
