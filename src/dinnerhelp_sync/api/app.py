"""FastAPI application factory for the local control API."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from dinnerhelp_sync.api.households import router as households_router
from dinnerhelp_sync.api.session import router as session_router
from dinnerhelp_sync.api.sync import router as sync_router
from dinnerhelp_sync.app_logging import configure_logging
from dinnerhelp_sync.containers import AppContainer, build_container
from dinnerhelp_sync.domain.errors import (
    AccountExistsError,
    AuthError,
    AuthNetworkError,
    HouseholdError,
    TransientReadError,
    TransientWriteError,
)


def _auth_error_status(exc: AuthError) -> int:
    if isinstance(exc, AccountExistsError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, AuthNetworkError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_401_UNAUTHORIZED


def create_app(container: AppContainer | None = None) -> FastAPI:
    """Create a FastAPI app; the container is built on startup when omitted."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.container is None:
            app.state.container = await build_container()
        active: AppContainer = app.state.container
        configure_logging(active.settings.log_level)
        active.session_controller.start()
        logger.info("Control API started")
        yield
        await active.session_controller.stop()
        await active.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(sync_router)
    app.include_router(session_router)
    app.include_router(households_router)

    @app.exception_handler(AuthError)
    async def handle_auth_error(_request: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(
            status_code=_auth_error_status(exc),
            content={"detail": str(exc), "kind": exc.kind},
        )

    @app.exception_handler(HouseholdError)
    async def handle_household_error(
        _request: Request, exc: HouseholdError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)}
        )

    @app.exception_handler(TransientReadError)
    @app.exception_handler(TransientWriteError)
    async def handle_transient_error(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        logger.warning("Remote store unavailable: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
