"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from macro_tracker.api.cache import router as cache_router
from macro_tracker.api.foods import router as foods_router
from macro_tracker.api.models import QueryOpenAIRequest
from macro_tracker.api.resolutions import router as resolutions_router
from macro_tracker.api.templates import router as templates_router
from macro_tracker.app_logging import configure_logging
from macro_tracker.containers import AppContainer
from macro_tracker.domain.errors import (
    DuplicateName,
    EstimationFailed,
    InvalidTransition,
    MacroTrackerError,
    PersistenceFailed,
    ValidationRejected,
)

_ERROR_STATUS: dict[type[MacroTrackerError], int] = {
    ValidationRejected: status.HTTP_400_BAD_REQUEST,
    DuplicateName: status.HTTP_409_CONFLICT,
    InvalidTransition: status.HTTP_409_CONFLICT,
    EstimationFailed: status.HTTP_502_BAD_GATEWAY,
    PersistenceFailed: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        state_container.schema_provisioner.ensure()
        try:
            state_container.catalog_service.refresh_snapshot()
        except MacroTrackerError:
            logger.exception("Failed to load the food catalog snapshot")
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(foods_router)
    app.include_router(resolutions_router)
    app.include_router(templates_router)
    app.include_router(cache_router)

    @app.exception_handler(MacroTrackerError)
    async def handle_tracker_error(
        request: Request, exc: MacroTrackerError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        logger.info("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.user_message, "category": exc.category},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/query-openai", response_class=PlainTextResponse)
    async def query_openai(
        body: QueryOpenAIRequest, request: Request
    ) -> PlainTextResponse:
        """Return the raw completion text for a food description."""
        state_container: AppContainer = request.app.state.container
        try:
            text = await state_container.estimation_service.complete_raw(
                body.ai_input_text
            )
        except EstimationFailed:
            return PlainTextResponse(
                "Internal Server Error",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return PlainTextResponse(text)

    return app


def _status_for(exc: MacroTrackerError) -> int:
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR
