"""Main FastAPI application for the GoalPilot backend."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from goalpilot.api.routes.ai import router as ai_router
from goalpilot.api.routes.goals import router as goals_router
from goalpilot.core.config import settings
from goalpilot.core.errors import ConfigurationError, RemoteServiceError
from goalpilot.core.logging import configure_logging
from goalpilot.core.middleware import RequestIDMiddleware
from goalpilot.observability.client import init_opik
from goalpilot.observability.metrics import log_metric
from goalpilot.observability.tracing import trace

configure_logging(log_level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(goals_router)
app.include_router(ai_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("AI generation unavailable: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


@app.exception_handler(RemoteServiceError)
async def remote_service_error_handler(request: Request, exc: RemoteServiceError) -> JSONResponse:
    logger.warning("Completion endpoint failed for %s: %s", request.url.path, exc)
    log_metric(
        "ai.remote_error",
        1,
        metadata={"route": request.url.path, "upstream_status": exc.status_code},
    )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": "Completion endpoint error", "upstream_status": exc.status_code},
    )


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
