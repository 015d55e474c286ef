"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. The process-wide collaborators (per-user settings store manager
and the service registry) are created here and hung off app.state, so
tests can build an app with their own. Lifespan creates the users table,
starts a client service for every stored user, and closes everything on
shutdown.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from floodgate import __version__
from floodgate.api import api_router
from floodgate.config import settings
from floodgate.errors import StorageError
from floodgate.services.gateway import AuthMode
from floodgate.services.lifecycle import ServiceRegistry
from floodgate.settings_store import SettingsStore, StoreManager

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    from floodgate.db.engine import async_session_factory, engine, init_models
    from floodgate.services.user_directory import UserDirectory

    logger.info(
        "floodgate.starting",
        version=__version__,
        environment=settings.environment,
        auth=AuthMode.from_settings().value,
        port=settings.port,
    )
    if AuthMode.from_settings() is AuthMode.BYPASSED:
        logger.warning("floodgate.auth_disabled")

    await init_models()
    async with async_session_factory() as db:
        users = await UserDirectory(db).list_users()
    await app.state.services.bootstrap(users)

    yield

    logger.info("floodgate.shutdown")
    await app.state.services.close()
    await app.state.settings_store.manager.close()
    await engine.dispose()


async def _validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"message": "Validation error.", "detail": jsonable_errors(exc)},
    )


async def _storage_error(request: Request, exc: StorageError):
    logger.error("floodgate.storage_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


def create_app(
    settings_store: Optional[SettingsStore] = None,
    services: Optional[ServiceRegistry] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Floodgate",
        description="Auth gateway and per-user settings store for the Flood web UI",
        version=__version__,
        lifespan=lifespan,
    )

    if settings_store is None:
        settings_store = SettingsStore(
            StoreManager(settings.db_path, echo=settings.debug)
        )
    if services is None:
        services = ServiceRegistry()
    app.state.settings_store = settings_store
    app.state.services = services

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler

    from floodgate.middleware.request_id import RequestIdMiddleware
    from floodgate.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StorageError, _storage_error)

    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: floodgate.main:app)
app = create_app()
