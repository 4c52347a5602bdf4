"""Diagnostics service — FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from diagnosis.api.middleware import MetricsMiddleware
from diagnosis.api.routes import router as diagnostics_router
from diagnosis.catalog.store import FlowCatalog
from diagnosis.config import settings
from diagnosis.flow.engine import DiagnosticEngine
from diagnosis.flow.errors import (
    FlowConfigurationError,
    FlowNotFoundError,
    InvalidAnswerError,
    SessionNotFoundError,
)
from diagnosis.sessions.store import SessionStore
from diagnosis.telemetry.logging import setup_logging
from diagnosis.telemetry.metrics import active_sessions, diagnostic_errors, get_metrics

logger = logging.getLogger("diagnosis")


def create_app(catalog: FlowCatalog | None = None, sessions: SessionStore | None = None) -> FastAPI:
    """Build the service. A pre-loaded catalog skips loading flows from disk at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if catalog is None:
            app.state.catalog.load_directory(settings.flows_dir)
        logger.info(
            "Diagnostics service ready: %d flows, categories=%s",
            len(app.state.catalog),
            [c.value for c in app.state.catalog.categories()],
        )
        yield
        logger.info("Diagnostics service shut down")

    app = FastAPI(
        title="Guided Diagnostics",
        description="Branching home-service diagnostics: DIY fixes or technician routing",
        version=settings.service_version,
        lifespan=lifespan,
    )
    app.state.catalog = catalog if catalog is not None else FlowCatalog()
    app.state.sessions = sessions if sessions is not None else SessionStore()
    active_sessions.set_function(app.state.sessions.active_count)
    app.state.engine = DiagnosticEngine()

    app.add_middleware(MetricsMiddleware)
    app.include_router(diagnostics_router)

    @app.exception_handler(InvalidAnswerError)
    async def invalid_answer(request: Request, exc: InvalidAnswerError):
        diagnostic_errors.labels(error_type="invalid_answer").inc()
        return JSONResponse(
            status_code=422,
            content={"error": "invalid_answer", "questionId": exc.question_id, "detail": exc.reason},
        )

    @app.exception_handler(FlowNotFoundError)
    async def flow_not_found(request: Request, exc: FlowNotFoundError):
        return JSONResponse(status_code=404, content={"error": "flow_not_found", "detail": str(exc)})

    @app.exception_handler(SessionNotFoundError)
    async def session_not_found(request: Request, exc: SessionNotFoundError):
        return JSONResponse(status_code=404, content={"error": "session_not_found", "detail": str(exc)})

    @app.exception_handler(FlowConfigurationError)
    async def flow_misconfigured(request: Request, exc: FlowConfigurationError):
        diagnostic_errors.labels(error_type=type(exc).__name__).inc()
        logger.error("Flow configuration error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=503,
            content={"error": "diagnostic_unavailable", "detail": "This diagnostic is temporarily unavailable."},
        )

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "flows_loaded": len(app.state.catalog),
            "active_sessions": app.state.sessions.active_count(),
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        body, content_type = get_metrics()
        return Response(content=body, media_type=content_type)

    if settings.otel_enabled:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        from diagnosis.telemetry.tracing import setup_tracing

        setup_tracing(settings.otlp_endpoint)
        FastAPIInstrumentor.instrument_app(app)

    return app


setup_logging(otlp_endpoint=settings.otlp_endpoint if settings.otel_enabled else None)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
