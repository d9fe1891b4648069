"""
Chat Proxy Service

A FastAPI service that lets browser clients talk to hosted chat models
without ever seeing the provider credentials.

Features:
- Single request shape for Groq and Gemini (``ai`` selects the provider)
- Accepts ``history`` or ``messages``, OpenAI-style or legacy sender/text turns
- Buffered JSON replies or streamed passthrough of the upstream body
- Upstream errors relayed with the provider's status code
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import GatewayConfig, ServiceSettings, load_config, settings
from .core.errors import GatewayError, InvalidRequestError
from .core.gateway import ChatGateway
from .models.request import DeliveryMode

# Configure logging
logging.basicConfig(level=settings.log_level)
# httpx logs request URLs at INFO, and Gemini carries its key in the query string
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _setup_tracing(app: FastAPI, endpoint: str) -> None:
    """Export spans over OTLP and instrument the app."""
    resource = Resource.create({"service.name": "chat-proxy"})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)


async def _read_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequestError("Request body must be valid JSON")


async def _proxy_chat(request: Request, stream: Optional[bool] = None):
    """Shared body of the chat endpoints."""
    gateway: ChatGateway = request.app.state.gateway
    body = await _read_body(request)

    if stream is None:
        stream = isinstance(body, dict) and body.get("stream") is True
    mode = DeliveryMode.STREAMED if stream else DeliveryMode.BUFFERED

    try:
        result = await gateway.handle(body, mode)
    except GatewayError:
        raise
    except Exception as e:
        logger.exception("Server error")
        return JSONResponse(
            status_code=500,
            content={"error": "Server error", "details": str(e)},
        )

    if mode == DeliveryMode.STREAMED:
        return StreamingResponse(
            result,
            media_type="text/plain; charset=utf-8",
            headers=STREAM_HEADERS,
        )

    return JSONResponse(content=result.to_payload())


def create_app(
    gateway_config: Optional[GatewayConfig] = None,
    service_settings: Optional[ServiceSettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        gateway_config: Provider configuration; loaded at startup if None
        service_settings: Process settings; module defaults if None
        transport: Optional httpx transport for the upstream client
    """
    service_settings = service_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        config = gateway_config or load_config(service_settings.config_path)

        http_client = httpx.AsyncClient(
            timeout=service_settings.upstream_timeout,
            transport=transport,
        )
        app.state.gateway = ChatGateway(config, http_client)

        configured = [p.value for p, pcfg in config.providers.items() if pcfg.has_credential]
        logger.info(f"Chat proxy started, configured providers: {configured or 'none'}")
        yield

        # Cleanup
        await http_client.aclose()
        logger.info("Chat proxy stopped")

    app = FastAPI(
        title="Chat Proxy",
        description="Provider-agnostic chat proxy for Groq and Gemini",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=service_settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if service_settings.otel_endpoint:
        _setup_tracing(app, service_settings.otel_endpoint)

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        if exc.status_code < 500:
            logger.warning(f"Rejected request: {exc.message}")
        else:
            logger.error(f"Request failed ({exc.status_code}): {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = "Method not allowed" if exc.status_code == 405 else exc.detail
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": message},
            headers=getattr(exc, "headers", None),
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/api/providers")
    async def list_providers(request: Request):
        """List providers and whether their credentials are configured."""
        return {"providers": request.app.state.gateway.registry.list_providers()}

    @app.post("/api/chat")
    async def chat(request: Request):
        """Chat proxy; ``stream: true`` in the body selects streamed delivery."""
        return await _proxy_chat(request)

    @app.post("/api/chat/stream")
    async def chat_stream(request: Request):
        """Chat proxy, always streamed."""
        return await _proxy_chat(request, stream=True)

    return app


app = create_app()


def run() -> None:
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
