"""
Leaderboard HTTP routes.
"""
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from focusbot.auth import verify_api_key
from focusbot.constants import DEFAULT_LEADERBOARD_LIMIT
from focusbot.database import get_db
from focusbot.schemas import LeaderboardEntry, StreakLeaderboardEntry
from focusbot.services.leaderboard_service import LeaderboardService

router = APIRouter(prefix="/api/leaderboards", tags=["leaderboards"])


@router.get("/all-time", response_model=List[LeaderboardEntry])
def all_time(
    community_id: str = Query(...),
    limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    return LeaderboardService(db).all_time(community_id, limit)


@router.get("/sprint", response_model=List[LeaderboardEntry])
def current_sprint(
    community_id: str = Query(...),
    limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Points earned in sprints running right now."""
    return LeaderboardService(db).current_sprint(community_id, limit)


@router.get("/streaks", response_model=List[StreakLeaderboardEntry])
def streaks(
    community_id: str = Query(...),
    limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    return LeaderboardService(db).streaks(community_id, limit)
