from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from expense_approvals.api.health import router as health_router
from expense_approvals.api.router import api_router
from expense_approvals.config import Settings, get_settings
from expense_approvals.db import Database
from expense_approvals.exceptions import setup_exception_handlers
from expense_approvals.middleware import setup_middleware
from expense_approvals.services.storage import ReceiptStorage

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure root logging once per process."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup and shutdown."""
    settings: Settings = app.state.settings
    configure_logging(settings)
    logger.info("Starting %s v%s [%s]", settings.app_name, settings.app_version, settings.environment)
    yield
    logger.info("Shutting down %s", settings.app_name)
    await app.state.database.dispose()


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    receipt_storage: ReceiptStorage | None = None,
) -> FastAPI:
    """Application factory.

    The database handle and the receipt store live on ``app.state``; tests
    pass their own instead of the ones built from settings.
    """
    settings = settings or get_settings()

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )
    application.state.settings = settings
    application.state.database = database or Database(settings.database_url, echo=settings.debug)
    application.state.receipt_storage = receipt_storage or ReceiptStorage(settings.receipts_dir)

    setup_middleware(application, settings)
    setup_exception_handlers(application)

    application.include_router(health_router)
    application.include_router(api_router)

    return application


app = create_app()
