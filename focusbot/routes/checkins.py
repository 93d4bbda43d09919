"""
Check-in and streak HTTP routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from focusbot.auth import verify_api_key
from focusbot.database import get_db
from focusbot.schemas import CheckInCreate, CheckInResult, StreakResponse
from focusbot.services.streak_service import StreakService
from focusbot.services.user_service import UserService

router = APIRouter(prefix="/api/checkins", tags=["checkins"])


@router.post("", response_model=CheckInResult, status_code=status.HTTP_201_CREATED)
def check_in(
    check_in: CheckInCreate,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Daily check-in; one per calendar day."""
    ref = check_in.user
    user = UserService(db).get_or_create(ref.account_id, ref.community_id, ref.username)
    return StreakService(db).record_check_in(
        user.id,
        ref.community_id,
        working_on=check_in.working_on,
        accomplished=check_in.accomplished,
        blockers=check_in.blockers
    )


@router.get("/streak", response_model=StreakResponse)
def get_streak(
    account_id: str = Query(...),
    community_id: str = Query(...),
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    user = UserService(db).get_or_create(account_id, community_id)
    return StreakService(db).get_streak_state(user.id, community_id)
