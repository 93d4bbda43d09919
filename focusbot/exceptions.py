"""
Custom exceptions for the focus period bot core.
Domain-rule violations are expected outcomes the caller turns into a friendly
message; StorageFailure is a generic "please try again".
"""
from typing import Any, Dict, Optional


class FocusBotException(Exception):
    """Base exception for the bot core"""
    http_status: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class AlreadyActiveError(FocusBotException):
    """Raised when a user starts a period while one is still running"""
    http_status = 409
    code = "ALREADY_ACTIVE"

    def __init__(self, period_id: int, days_remaining: int):
        self.period_id = period_id
        super().__init__(
            f"You already have an active Focus Period with {days_remaining} days remaining",
            {"period_id": period_id, "days_remaining": days_remaining}
        )


class NoActivePeriodError(FocusBotException):
    """Raised when an operation needs an active period and there is none"""
    http_status = 404
    code = "NO_ACTIVE_PERIOD"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__("You don't have an active Focus Period", {"user_id": user_id})


class GoalNotFoundError(FocusBotException):
    """Raised when no goal occupies the requested position"""
    http_status = 404
    code = "GOAL_NOT_FOUND"

    def __init__(self, period_id: int, position: int):
        self.period_id = period_id
        self.position = position
        super().__init__(
            f"Goal #{position} not found",
            {"period_id": period_id, "position": position}
        )


class AlreadyCompletedError(FocusBotException):
    """Raised when completing a goal that is already done"""
    http_status = 409
    code = "ALREADY_COMPLETED"

    def __init__(self, period_id: int, position: int):
        self.period_id = period_id
        self.position = position
        super().__init__(
            f"Goal #{position} is already completed",
            {"period_id": period_id, "position": position}
        )


class DuplicateCheckInError(FocusBotException):
    """Raised on a second check-in for the same calendar day"""
    http_status = 409
    code = "DUPLICATE_CHECK_IN"

    def __init__(self, user_id: int, day):
        self.user_id = user_id
        self.day = day
        super().__init__(
            "You've already checked in today",
            {"user_id": user_id, "day": str(day)}
        )


class StorageFailure(FocusBotException):
    """Raised when a persistence operation fails; nothing was applied"""
    http_status = 503
    code = "STORAGE_FAILURE"

    def __init__(self, operation: str, details: str):
        self.operation = operation
        super().__init__(
            "Something went wrong, please try again",
            {"operation": operation, "error": details}
        )


class EstimatorFailure(FocusBotException):
    """Raised inside the estimator only; always replaced by the default value"""
    code = "ESTIMATOR_FAILURE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Task estimation failed: {reason}")


class UserNotFoundError(FocusBotException):
    http_status = 404
    code = "USER_NOT_FOUND"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User with ID {user_id} not found", {"user_id": user_id})


class ChallengeNotFoundError(FocusBotException):
    http_status = 404
    code = "CHALLENGE_NOT_FOUND"

    def __init__(self, challenge_id: int):
        self.challenge_id = challenge_id
        super().__init__(f"Challenge {challenge_id} not found", {"challenge_id": challenge_id})


class ChallengeStateError(FocusBotException):
    """Raised when a challenge action doesn't fit the participant's state"""
    http_status = 409
    code = "CHALLENGE_STATE"

    def __init__(self, message: str):
        super().__init__(message)


class ValidationException(FocusBotException):
    """Raised when data validation fails"""
    http_status = 422
    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error for {field}: {message}", {"field": field})
