from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker
from typing import Optional
import logging
import os
from pathlib import Path

from focusbot.constants import (
    CORS_ALLOWED_ORIGINS,
    DEFAULT_LOG_DIRECTORY_DEV,
    DEFAULT_LOG_DIRECTORY_PROD,
    DEFAULT_WEBHOOK_TIMEOUT_SECONDS,
)
from focusbot.database import make_session_factory
from focusbot.exceptions import FocusBotException
from focusbot.routes import (
    buddies, challenges, checkins, config, leaderboards, mrr, periods, points, sweeps, wins,
)
from focusbot.scheduler import FocusScheduler
from focusbot.services.estimator_service import TaskEstimator
from focusbot.services.notification_service import NotificationService, WebhookSink

logger = logging.getLogger("focusbot")


def configure_logging() -> Path:
    """File + console logging; falls back to a local directory without /var/log access"""
    log_dir = os.getenv("FOCUSBOT_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
    log_file = os.getenv("FOCUSBOT_LOG_FILE", "app.log")

    try:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        log_path = Path(log_dir) / log_file
    except PermissionError:
        log_dir = DEFAULT_LOG_DIRECTORY_DEV
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        log_path = Path(log_dir) / log_file

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler()  # Also log to console
        ]
    )
    return log_path


async def focusbot_exception_handler(request: Request, exc: FocusBotException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


def create_app(
    session_factory: Optional[sessionmaker] = None,
    notifier: Optional[NotificationService] = None,
    estimator: Optional[TaskEstimator] = None,
    start_scheduler: bool = True
) -> FastAPI:
    """
    Build the API with its own session factory, notifier and estimator.

    Run with: uvicorn focusbot.main:create_app --factory
    """
    log_path = configure_logging()

    session_factory = session_factory or make_session_factory()
    if notifier is None:
        timeout = float(os.getenv("FOCUSBOT_WEBHOOK_TIMEOUT", DEFAULT_WEBHOOK_TIMEOUT_SECONDS))
        notifier = NotificationService(WebhookSink(timeout))
    estimator = estimator or TaskEstimator()

    app = FastAPI(
        title="Focus Bot API",
        description="Focus periods, streaks and leaderboards for founder communities",
        version="1.0.0"
    )
    app.state.session_factory = session_factory
    app.state.notifier = notifier
    app.state.estimator = estimator
    app.state.scheduler = FocusScheduler(session_factory, notifier) if start_scheduler else None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(FocusBotException, focusbot_exception_handler)

    for module in (periods, checkins, points, leaderboards, wins, challenges, buddies, mrr, config, sweeps):
        app.include_router(module.router)

    @app.on_event("startup")
    async def startup_event():
        logger.info(f"Focus Bot API started. Logging to: {log_path}")
        if app.state.scheduler is not None:
            app.state.scheduler.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down Focus Bot API")
        if app.state.scheduler is not None:
            app.state.scheduler.stop()
        app.state.notifier.shutdown()

    # Health check (no auth required)
    @app.get("/")
    async def root():
        return {"message": "Focus Bot API", "status": "active"}

    return app
