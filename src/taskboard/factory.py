"""Dependency injection factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from taskboard.config import Config
from taskboard.remote.task_service import HttpTaskService, TaskService
from taskboard.session.credential_store import CredentialStore, FileCredentialStore
from taskboard.session.session_manager import SessionManager
from taskboard.tasks.stats import StatsAggregator
from taskboard.tasks.task_cache import PresetConfirmation, TaskCacheController
from taskboard.websocket.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

# Global config instance for dependency injection
_config: Config | None = None

# Owned once per process: session, cache and their collaborators
_credential_store: CredentialStore | None = None
_task_service: TaskService | None = None
_connection_manager: ConnectionManager | None = None
_session_manager: SessionManager | None = None
_task_controller: TaskCacheController | None = None


def get_config() -> Config:
    """Get or create Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_credential_store() -> CredentialStore:
    """Get or create the token store."""
    global _credential_store
    if _credential_store is None:
        _credential_store = FileCredentialStore(get_config().credentials_path)
    return _credential_store


def get_task_service() -> TaskService:
    """Get or create the remote service client."""
    global _task_service
    if _task_service is None:
        config = get_config()
        _task_service = HttpTaskService(
            config.api_base_url, get_credential_store(), timeout=config.request_timeout
        )
    return _task_service


def get_connection_manager() -> ConnectionManager:
    """Get or create ConnectionManager singleton."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager


def get_session_manager() -> SessionManager:
    """Get or create SessionManager singleton."""
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager(
            get_task_service(), get_credential_store(), get_connection_manager()
        )
    return _session_manager


def get_task_controller() -> TaskCacheController:
    """Get or create the task cache controller, reset on every logout.

    Deletes through the dashboard must be confirmed per request, so the
    default prompt declines.
    """
    global _task_controller
    if _task_controller is None:
        service = get_task_service()
        session_manager = get_session_manager()
        _task_controller = TaskCacheController(
            service,
            session_manager,
            StatsAggregator(service),
            get_connection_manager(),
            PresetConfirmation(False),
            search_debounce=get_config().search_debounce,
        )
        session_manager.add_logout_callback(_task_controller.reset)
    return _task_controller


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle - startup and shutdown."""
    logger.info("[Lifespan] Resolving session...")
    session = await get_session_manager().start()
    if session.is_authenticated:
        logger.info("[Lifespan] Loading tasks...")
        await get_task_controller().load()

    try:
        yield
    finally:
        service = get_task_service()
        if isinstance(service, HttpTaskService):
            logger.info("[Lifespan] Closing HTTP client...")
            await service.close()


def create_app() -> FastAPI:
    """Create FastAPI application (composition root)."""
    from taskboard.api.auth import router as auth_router
    from taskboard.api.tasks import router as tasks_router
    from taskboard.api.websocket import router as ws_router

    app = FastAPI(
        title="Taskboard",
        description="Task dashboard client: session, cached tasks and stats",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(auth_router, prefix="/api")
    app.include_router(tasks_router, prefix="/api")
    app.include_router(ws_router)  # WebSocket at /ws

    return app
