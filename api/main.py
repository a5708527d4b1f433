"""
VIP Numbers Back Office API - Main Application.

FastAPI application with CORS enabled for frontend communication. The record
store is loaded on startup and the recurring checks (auto-RTS, system
reminders, reminder sweep, snapshot refresh) run on background threads for
the lifetime of the app.
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.config import Settings
from api.routers import history, ledger, numbers, prebookings, reminders, sales, transfers, users, webhook
from domain.time import utc_now
from repositories.document_store import SupabaseDocumentStore
from services.errors import (
    DuplicateNumberError,
    ForbiddenActionError,
    PermissionDeniedError,
    RecordNotFoundError,
    ValidationError,
    error_events,
)
from services.record_store import RecordStore
from services.reminder_service import ReminderPopupTracker
from services.scheduler import build_scheduler
from services.telegram_bot import TelegramClient

logger = logging.getLogger(__name__)


def _log_write_error(error: PermissionDeniedError) -> None:
    logger.error(
        "Database rejected a write",
        extra={"path": error.path, "operation": error.operation, "detail": str(error)},
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DuplicateNumberError)
    async def duplicate_number_handler(request: Request, exc: DuplicateNumberError):
        return JSONResponse(status_code=409, content={"detail": str(exc), "mobile": exc.mobile})

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc), "problems": exc.problems})

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(request: Request, exc: RecordNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ForbiddenActionError)
    async def forbidden_handler(request: Request, exc: ForbiddenActionError):
        return JSONResponse(status_code=403, content={"detail": str(exc)})

    @app.exception_handler(PermissionDeniedError)
    async def write_rejected_handler(request: Request, exc: PermissionDeniedError):
        event = exc.to_event()
        event.pop("request_resource_data", None)
        return JSONResponse(status_code=403, content=event)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    *,
    clock: Callable = utc_now,
    telegram_client: Optional[TelegramClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Defaults to Settings.from_env()
        store: Defaults to a RecordStore over Supabase (connected on startup)
        clock: Source of "now" for every operation
        telegram_client: Defaults to a client using the configured bot token
    """
    settings = settings or Settings.from_env()
    store = store or RecordStore(SupabaseDocumentStore())
    telegram_client = telegram_client or TelegramClient(settings.telegram_bot_token)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        unsubscribe = error_events.on(_log_write_error)
        if not store.is_started:
            store.start()

        scheduler = None
        if settings.enable_scheduler:
            scheduler = build_scheduler(
                store,
                timezone=settings.business_timezone,
                snapshot_seconds=settings.snapshot_refresh_seconds,
                rts_seconds=settings.rts_check_seconds,
                reminder_seconds=settings.reminder_check_seconds,
                sweep_seconds=settings.reminder_sweep_seconds,
                retention_days=settings.completed_reminder_retention_days,
                clock=clock,
            )
            scheduler.start()

        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop()
            store.stop()
            unsubscribe()

    app = FastAPI(
        title="VIP Numbers Back Office API",
        description="REST API for managing VIP mobile number inventory, sales and reminders",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.clock = clock
    app.state.telegram = telegram_client
    app.state.reminder_popups = ReminderPopupTracker()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Health check endpoint.

        Returns the API status, version and whether the record store has loaded.
        """
        return {
            "status": "healthy",
            "version": __version__,
            "service": "vip-numbers-api",
            "store_loaded": store.is_started and not store.loading,
        }

    @app.get("/", tags=["Root"])
    def root():
        """
        Root endpoint with API information.
        """
        return {
            "message": "VIP Numbers Back Office API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    app.include_router(numbers.router, prefix="/api/v1", tags=["Numbers"])
    app.include_router(sales.router, prefix="/api/v1", tags=["Sales"])
    app.include_router(prebookings.router, prefix="/api/v1", tags=["Pre-Bookings"])
    app.include_router(ledger.router, prefix="/api/v1", tags=["Dealer Purchases & Payments"])
    app.include_router(reminders.router, prefix="/api/v1", tags=["Reminders"])
    app.include_router(history.router, prefix="/api/v1", tags=["History"])
    app.include_router(users.router, prefix="/api/v1", tags=["Users"])
    app.include_router(transfers.router, prefix="/api/v1", tags=["Import & Export"])
    app.include_router(webhook.router, tags=["Telegram"])

    return app


app = create_app()
