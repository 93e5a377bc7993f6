"""
Baby Sleep Tracker – Backend API
Start with: uvicorn main:app --reload
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from db import engine, init_db
from deps import ManagerDep
from errors import InvariantViolation, StoreUnavailable, ValidationFailure
from log import setup_logging_to_console, setup_logging_to_file
from routers import calendar, sessions
from session_manager import SessionManager
from store import SessionStore, SQLModelSessionStore

logger = logging.getLogger(__name__)


def create_app(store: Optional[SessionStore] = None) -> FastAPI:
    """Build the API. Without a store, sessions live in the configured database."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging_to_console(settings.LOG_LEVEL)
        if settings.LOG_FILE:
            setup_logging_to_file(settings.LOG_FILE, settings.LOG_LEVEL)
        if store is None:
            init_db(engine)
        app.state.manager.refresh()
        logger.info("Loaded %d sleep sessions", len(app.state.manager.sessions))
        yield

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Track baby naps: live sessions, manual entries and daily totals",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.manager = SessionManager(store or SQLModelSessionStore(engine), tz=settings.tz)

    # Allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        return JSONResponse(status_code=503, content={"error": "store_unavailable", "detail": str(exc)})

    @app.exception_handler(ValidationFailure)
    async def validation_failure_handler(request: Request, exc: ValidationFailure):
        return JSONResponse(status_code=400, content={"error": "validation", "detail": exc.reason})

    @app.exception_handler(InvariantViolation)
    async def invariant_violation_handler(request: Request, exc: InvariantViolation):
        logger.error("Invariant violation: %s", exc)
        return JSONResponse(status_code=500, content={"error": "invariant_violation", "detail": str(exc)})

    @app.get("/health")
    def health(manager: ManagerDep):
        """Check that the API is running and the stored sessions are consistent. Frontend can call this first."""
        manager.check_invariants()
        return {"status": "ok", "message": f"{settings.PROJECT_NAME} is running"}

    @app.get("/")
    def root():
        """Root welcome."""
        return {"app": settings.PROJECT_NAME, "docs": "/docs"}

    app.include_router(sessions.router)
    app.include_router(calendar.router)
    return app


app = create_app()
