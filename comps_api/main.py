import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Routers
from .routers.comps import router as comps_router
from .routers.usage import router as usage_router

# Core modules
from .core.config import settings
from .core.errors import ValidationError
from .core.logging import configure_logging, CorrelationIdMiddleware
from .core.metrics import PromMiddleware, metrics_endpoint
from .core.security import CORS_HEADERS, PermissiveCorsMiddleware

log = logging.getLogger(__name__)

def create_app() -> FastAPI:
    """
    App factory so tests and ASGI servers can instantiate cleanly.
    """
    configure_logging()  # Set up JSON logs + correlation-id filter

    app = FastAPI(
        title="Comparable Sales API",
        version="1.0.0",
        description="Resolves recent comparable sales for a subject property across metered data providers.",
    )

    # Bare OPTIONS probes and header stamping; browser preflights are answered by CORSMiddleware below
    app.add_middleware(PermissiveCorsMiddleware)

    # Observability middlewares
    app.add_middleware(CorrelationIdMiddleware)  # Adds/propagates X-Request-Id
    if settings.PROMETHEUS_ENABLED:
        app.add_middleware(PromMiddleware)       # Records req/latency metrics

    allow_origins = [o.strip() for o in settings.ALLOW_ORIGINS.split(",")] if settings.ALLOW_ORIGINS else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
        max_age=86400,
    )

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return JSONResponse({"error": str(exc)}, status_code=400, headers=CORS_HEADERS)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        log.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"error": str(exc) or type(exc).__name__}, status_code=500, headers=CORS_HEADERS)

    # Meta routes
    @app.get("/v1/health", tags=["meta"])
    def health():
        return {"status": "ok"}

    @app.get("/v1/ping", tags=["meta"])
    def ping():
        return {"pong": True}

    if settings.PROMETHEUS_ENABLED:
        # Standard Prometheus scrape endpoint
        app.add_route("/v1/metrics", metrics_endpoint, methods=["GET"])

    # Business routes
    app.include_router(comps_router, prefix="/v1", tags=["comps"])
    app.include_router(usage_router, prefix="/v1", tags=["usage"])

    return app

app = create_app()
