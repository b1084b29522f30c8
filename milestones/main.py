"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

from fastapi import FastAPI, Request

from milestones.api import schedules
from milestones.api.dependencies import get_editor_registry
from milestones.config import settings
from milestones.core.database import get_db_manager, init_databases, shutdown_databases
from milestones.core.logging import (
    CorrelationIDFilter,
    clear_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)

# Log format with correlation ID
LOG_FORMAT = "%(asctime)s - [%(correlation_id)s] - %(name)s - %(levelname)s - %(message)s"


def configure_logging() -> None:
    """Console plus rotating file logging, both tagged with correlation IDs."""
    log_dir = settings.data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = [
        logging.StreamHandler(),  # systemd/docker logs
        RotatingFileHandler(
            log_dir / settings.log_file_name,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        ),
    ]
    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(CorrelationIDFilter())

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        handlers=handlers,
        force=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    configure_logging()
    logger.info(f"Starting {settings.app_name}...")

    await init_databases(settings.data_dir, settings.database_name)

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    registry = get_editor_registry()
    registry.clear()
    await shutdown_databases()


app = FastAPI(
    title=settings.app_name,
    description="Payment milestone schedule editor",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Tag every request's log lines with a correlation ID."""
    correlation_id = set_correlation_id()
    try:
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response
    finally:
        clear_correlation_id()


app.include_router(schedules.router, prefix="/api/schedules", tags=["Schedules"])


async def _database_status() -> tuple[str, bool]:
    """Probe the schedules database; returns (status text, degraded)."""
    try:
        await get_db_manager().schedules.fetchone("SELECT 1")
    except Exception as e:
        return f"error: {e}", True
    return "connected", False


@app.get("/health")
async def health():
    """Liveness plus database status and the number of open editors."""
    db_status, db_degraded = await _database_status()
    return {
        "status": "degraded" if db_degraded else "healthy",
        "app": settings.app_name,
        "database": db_status,
        "open_editors": len(get_editor_registry()),
    }
