"""
Manual sweep trigger, for admins and for catching up after downtime.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from focusbot.auth import verify_api_key
from focusbot.database import get_db
from focusbot.routes.deps import get_notifier
from focusbot.schemas import SweepResult
from focusbot.services.notification_service import NotificationService
from focusbot.services.period_service import PeriodService

router = APIRouter(prefix="/api/sweeps", tags=["sweeps"])


@router.post("/{community_id}/ended-periods", response_model=SweepResult)
def sweep_ended_periods(
    community_id: str,
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    _: str = Depends(verify_api_key)
):
    """Post the sprint leaderboard for ended periods right away."""
    return PeriodService(db, notifier=notifier).sweep_ended_periods(community_id)
