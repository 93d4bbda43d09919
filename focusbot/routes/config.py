"""
Community configuration HTTP routes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from focusbot.auth import verify_api_key
from focusbot.database import get_db, unit_of_work
from focusbot.repositories.settings_repository import CommunityConfigRepository
from focusbot.schemas import CommunityConfigResponse, CommunityConfigUpdate

router = APIRouter(prefix="/api/communities", tags=["config"])


@router.get("/{community_id}/config", response_model=CommunityConfigResponse)
def get_config(
    community_id: str,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    config = CommunityConfigRepository.get(db, community_id)
    if config is None:
        return CommunityConfigResponse(community_id=community_id)
    return config


@router.put("/{community_id}/config", response_model=CommunityConfigResponse)
def update_config(
    community_id: str,
    update: CommunityConfigUpdate,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Set where leaderboards and reminders go; only given fields change."""
    with unit_of_work(db, "update_community_config"):
        config = CommunityConfigRepository.get_or_create(db, community_id)
        for field, value in update.model_dump(exclude_unset=True).items():
            setattr(config, field, value)
    return config
