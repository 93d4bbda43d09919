"""
Revenue (MRR) tracking HTTP routes.
"""
from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from focusbot.auth import verify_api_key
from focusbot.constants import DEFAULT_LEADERBOARD_LIMIT, MRR_DEFAULT_HISTORY_MONTHS
from focusbot.database import get_db
from focusbot.routes.deps import get_notifier
from focusbot.schemas import (
    MrrEntryResponse, MrrLeaderboardEntry, MrrSettingsResponse, MrrStats,
    MrrUpdate, MrrUpdateResult, MrrVisibilityUpdate,
)
from focusbot.services.mrr_service import MrrService
from focusbot.services.notification_service import NotificationService
from focusbot.services.user_service import UserService

router = APIRouter(prefix="/api/mrr", tags=["mrr"])


@router.post("", response_model=MrrUpdateResult, status_code=status.HTTP_201_CREATED)
def record_mrr(
    update: MrrUpdate,
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    _: str = Depends(verify_api_key)
):
    """Log current MRR; reports a milestone the first time one is reached."""
    ref = update.user
    user = UserService(db).get_or_create(ref.account_id, ref.community_id, ref.username)
    return MrrService(db, notifier).record(user.id, update.amount, update.currency, update.note)


@router.put("/visibility", response_model=MrrSettingsResponse)
def set_visibility(
    update: MrrVisibilityUpdate,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    ref = update.user
    user = UserService(db).get_or_create(ref.account_id, ref.community_id, ref.username)
    return MrrService(db).set_visibility(user.id, update.is_public)


@router.get("/history", response_model=List[MrrEntryResponse])
def history(
    account_id: str = Query(...),
    community_id: str = Query(...),
    months: int = Query(MRR_DEFAULT_HISTORY_MONTHS, ge=1, le=24),
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    user = UserService(db).get_or_create(account_id, community_id)
    return MrrService(db).history(user.id, months)


@router.get("/stats", response_model=MrrStats)
def stats(
    account_id: str = Query(...),
    community_id: str = Query(...),
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    user = UserService(db).get_or_create(account_id, community_id)
    return MrrService(db).stats(user.id)


@router.get("/leaderboard", response_model=List[MrrLeaderboardEntry])
def leaderboard(
    community_id: str = Query(...),
    limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Only users who made their MRR public are ranked."""
    return MrrService(db).leaderboard(community_id, limit)
