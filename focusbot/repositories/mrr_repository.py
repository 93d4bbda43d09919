"""
MRR repository - Data access layer for revenue entries and per-user MRR settings.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_, func

from focusbot.models import MrrEntry, MrrSettings, User


class MrrEntryRepository:
    """Repository for MrrEntry data access"""

    @staticmethod
    def create(db: Session, entry: MrrEntry) -> MrrEntry:
        db.add(entry)
        db.flush()
        return entry

    @staticmethod
    def _for_user(db: Session, user_id: int, community_id: str):
        return db.query(MrrEntry).filter(
            MrrEntry.user_id == user_id,
            MrrEntry.community_id == community_id
        )

    @staticmethod
    def get_latest(db: Session, user_id: int, community_id: str, before: Optional[datetime] = None) -> Optional[MrrEntry]:
        """Most recent entry, optionally the most recent one at or before `before`"""
        query = MrrEntryRepository._for_user(db, user_id, community_id)
        if before is not None:
            query = query.filter(MrrEntry.recorded_at <= before)
        return query.order_by(MrrEntry.recorded_at.desc(), MrrEntry.id.desc()).first()

    @staticmethod
    def get_first(db: Session, user_id: int, community_id: str) -> Optional[MrrEntry]:
        return MrrEntryRepository._for_user(db, user_id, community_id).order_by(
            MrrEntry.recorded_at.asc(), MrrEntry.id.asc()
        ).first()

    @staticmethod
    def get_since(db: Session, user_id: int, community_id: str, since: datetime) -> List[MrrEntry]:
        """Entries recorded at or after `since`, newest first"""
        return MrrEntryRepository._for_user(db, user_id, community_id).filter(
            MrrEntry.recorded_at >= since
        ).order_by(MrrEntry.recorded_at.desc(), MrrEntry.id.desc()).all()

    @staticmethod
    def get_summary(db: Session, user_id: int, community_id: str) -> tuple:
        """(entry count, highest amount ever logged)"""
        count, high = db.query(
            func.count(MrrEntry.id),
            func.max(MrrEntry.amount)
        ).filter(
            MrrEntry.user_id == user_id,
            MrrEntry.community_id == community_id
        ).one()
        return count or 0, high or 0.0

    @staticmethod
    def leaderboard_rows(db: Session, community_id: str, limit: int) -> list:
        """
        Latest entry of every user with public MRR, highest first.

        Rows: (user_id, account_id, username, amount, currency, recorded_at)
        """
        recency = func.row_number().over(
            partition_by=MrrEntry.user_id,
            order_by=[MrrEntry.recorded_at.desc(), MrrEntry.id.desc()]
        ).label("recency")
        ranked = db.query(
            MrrEntry.id.label("entry_id"),
            recency
        ).filter(
            MrrEntry.community_id == community_id
        ).subquery()

        return db.query(
            User.id,
            User.account_id,
            User.username,
            MrrEntry.amount,
            MrrEntry.currency,
            MrrEntry.recorded_at,
        ).select_from(
            MrrEntry
        ).join(
            ranked, and_(ranked.c.entry_id == MrrEntry.id, ranked.c.recency == 1)
        ).join(
            User, User.id == MrrEntry.user_id
        ).join(
            MrrSettings, and_(
                MrrSettings.user_id == MrrEntry.user_id,
                MrrSettings.community_id == MrrEntry.community_id
            )
        ).filter(
            MrrSettings.is_public == True
        ).order_by(
            MrrEntry.amount.desc(),
            MrrEntry.recorded_at.asc(),
            User.id.asc()
        ).limit(limit).all()


class MrrSettingsRepository:
    """Repository for MrrSettings data access"""

    @staticmethod
    def get(db: Session, user_id: int, community_id: str) -> Optional[MrrSettings]:
        return db.query(MrrSettings).filter(
            MrrSettings.user_id == user_id,
            MrrSettings.community_id == community_id
        ).first()

    @staticmethod
    def get_or_create(db: Session, user_id: int, community_id: str) -> MrrSettings:
        """Settings for a user, created private with no milestones on first use"""
        settings = MrrSettingsRepository.get(db, user_id, community_id)
        if not settings:
            settings = MrrSettings(
                user_id=user_id,
                community_id=community_id,
                is_public=False,
                last_milestone_reached=0
            )
            db.add(settings)
            db.flush()
        return settings

    @staticmethod
    def raise_milestone(db: Session, settings_id: int, milestone: int) -> int:
        """
        Record a higher milestone in a single conditional UPDATE.

        Returns:
            Number of rows updated (0 when an equal or higher milestone is already recorded)
        """
        return db.query(MrrSettings).filter(
            MrrSettings.id == settings_id,
            MrrSettings.last_milestone_reached < milestone
        ).update(
            {MrrSettings.last_milestone_reached: milestone},
            synchronize_session=False
        )
