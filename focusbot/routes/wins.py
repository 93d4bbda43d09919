"""
Win sharing HTTP routes.
"""
from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from focusbot.auth import verify_api_key
from focusbot.database import get_db
from focusbot.schemas import WinCreate, WinResponse
from focusbot.services.user_service import UserService
from focusbot.services.win_service import WinService

router = APIRouter(prefix="/api/wins", tags=["wins"])


@router.post("", response_model=WinResponse, status_code=status.HTTP_201_CREATED)
def share_win(
    win: WinCreate,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    ref = win.user
    user = UserService(db).get_or_create(ref.account_id, ref.community_id, ref.username)
    return WinService(db).share_win(user.id, win.message, win.category)


@router.get("/last-month", response_model=List[WinResponse])
def last_month_wins(
    community_id: str = Query(...),
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Wins shared during the previous calendar month."""
    return WinService(db).monthly_top_wins(community_id)
