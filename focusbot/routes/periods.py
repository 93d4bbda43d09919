"""
Focus period HTTP routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from focusbot.auth import verify_api_key
from focusbot.database import get_db
from focusbot.exceptions import NoActivePeriodError
from focusbot.routes.deps import get_estimator, get_notifier
from focusbot.schemas import (
    CompletionResponse, GoalComplete, GoalCreate, GoalResponse, PeriodResponse, UserRef,
)
from focusbot.services.estimator_service import TaskEstimator
from focusbot.services.notification_service import NotificationService
from focusbot.services.period_service import PeriodService
from focusbot.services.user_service import UserService

router = APIRouter(prefix="/api/periods", tags=["periods"])


@router.post("/start", response_model=PeriodResponse, status_code=status.HTTP_201_CREATED)
def start_period(
    ref: UserRef,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Start a two-week focus period."""
    user = UserService(db).get_or_create(ref.account_id, ref.community_id, ref.username)
    service = PeriodService(db)
    period = service.start_period(user.id)
    return service.describe(period)


@router.get("/active", response_model=PeriodResponse)
def get_active_period(
    account_id: str = Query(...),
    community_id: str = Query(...),
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Current period with its goals and day counters."""
    user = UserService(db).get_or_create(account_id, community_id)
    service = PeriodService(db)
    period = service.get_active_period(user.id)
    if period is None:
        raise NoActivePeriodError(user.id)
    return service.describe(period)


@router.post("/goals", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
def add_goal(
    goal: GoalCreate,
    db: Session = Depends(get_db),
    estimator: TaskEstimator = Depends(get_estimator),
    _: str = Depends(verify_api_key)
):
    """Add a goal to the active period; points are estimated."""
    user = UserService(db).get_or_create(goal.user.account_id, goal.user.community_id, goal.user.username)
    service = PeriodService(db, estimator=estimator)
    period = service.require_active_period(user.id)
    return service.add_goal(period.id, goal.title, goal.description)


@router.post("/goals/complete", response_model=CompletionResponse)
def complete_goal(
    completion: GoalComplete,
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    _: str = Depends(verify_api_key)
):
    """Mark a goal done by its position."""
    ref = completion.user
    user = UserService(db).get_or_create(ref.account_id, ref.community_id, ref.username)
    service = PeriodService(db, notifier=notifier)
    period = service.require_active_period(user.id)
    return service.complete_goal(period.id, completion.position)
