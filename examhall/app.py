"""Main FastAPI application with modularized routes."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from examhall.database import SessionLocal, init_db
from examhall.errors import ExamError
from examhall.logging_setup import setup_console_logging
from examhall.routes import admin, sessions, window
from examhall.services import window_service

setup_console_logging()

logger = logging.getLogger(__name__)

app = FastAPI(title="Exam Hall API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ExamError)
async def exam_error_handler(request: Request, exc: ExamError) -> JSONResponse:
    """Map engine errors to HTTP responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Create tables and the default window on startup."""
    init_db()
    db = SessionLocal()
    try:
        window_service.ensure_window(db)
    finally:
        db.close()


# Include routers
app.include_router(window.router)
app.include_router(sessions.router)
app.include_router(admin.router)
