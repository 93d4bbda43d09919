"""
Shared request dependencies for the HTTP routes.
Everything comes from app.state, set up by create_app.
"""
from fastapi import Request

from focusbot.services.estimator_service import TaskEstimator
from focusbot.services.notification_service import NotificationService


def get_estimator(request: Request) -> TaskEstimator:
    return request.app.state.estimator


def get_notifier(request: Request) -> NotificationService:
    return request.app.state.notifier
