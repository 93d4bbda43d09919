"""
Points HTTP routes.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from focusbot.auth import verify_api_key
from focusbot.database import get_db
from focusbot.schemas import PointsAward, PointsBalance
from focusbot.services.points_service import PointsService
from focusbot.services.user_service import UserService

router = APIRouter(prefix="/api/points", tags=["points"])


@router.get("", response_model=PointsBalance)
def get_points(
    account_id: str = Query(...),
    community_id: str = Query(...),
    period_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Lifetime total, plus one sprint subtotal when period_id is given."""
    user = UserService(db).get_or_create(account_id, community_id)
    return PointsService(db).get_balance(user.id, period_id)


@router.post("/award", response_model=PointsBalance)
def award_points(
    award: PointsAward,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Manual award by an admin; credits the running sprint too."""
    ref = award.user
    user = UserService(db).get_or_create(ref.account_id, ref.community_id, ref.username)
    service = PointsService(db)
    period = service.award(user.id, award.amount)
    return service.get_balance(user.id, period.id if period else None)
