"""
Community settings repository - Data access layer for CommunityConfig model.
"""
from typing import Optional
from sqlalchemy.orm import Session
from focusbot.models import CommunityConfig


class CommunityConfigRepository:
    """Repository for CommunityConfig data access"""

    @staticmethod
    def get(db: Session, community_id: str) -> Optional[CommunityConfig]:
        """Get configuration for a community (None when never configured)"""
        return db.query(CommunityConfig).filter(
            CommunityConfig.community_id == community_id
        ).first()

    @staticmethod
    def get_or_create(db: Session, community_id: str) -> CommunityConfig:
        """
        Get configuration (creates an empty one if not exists).

        Returns:
            CommunityConfig object
        """
        config = CommunityConfigRepository.get(db, community_id)
        if not config:
            config = CommunityConfig(community_id=community_id)
            db.add(config)
            db.flush()
        return config

    @staticmethod
    def get_leaderboard_destination(db: Session, community_id: str) -> Optional[str]:
        config = CommunityConfigRepository.get(db, community_id)
        if not config or not config.leaderboard_destination:
            return None
        return config.leaderboard_destination

    @staticmethod
    def get_reminder_destination(db: Session, community_id: str) -> Optional[str]:
        config = CommunityConfigRepository.get(db, community_id)
        if not config or not config.reminder_destination:
            return None
        return config.reminder_destination

    @staticmethod
    def get_mrr_destination(db: Session, community_id: str) -> Optional[str]:
        config = CommunityConfigRepository.get(db, community_id)
        if not config or not config.mrr_destination:
            return None
        return config.mrr_destination
