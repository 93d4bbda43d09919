from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Float, Date, ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from focusbot.database import Base
from focusbot.constants import (
    CHALLENGE_STATUS_ACTIVE, MRR_DEFAULT_CURRENCY, PARTICIPANT_STATUS_ACTIVE, WIN_CATEGORY_OTHER,
)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("account_id", "community_id", name="uq_user_account_community"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(String, nullable=False, index=True)   # External chat account
    community_id = Column(String, nullable=False, index=True)
    username = Column(String, nullable=True)                  # Cached display name

    # Lifetime ledger
    total_points = Column(Integer, default=0, nullable=False)
    points_updated_at = Column(DateTime, nullable=True)       # When the current total was reached

    created_at = Column(DateTime, default=datetime.now)


class CommunityConfig(Base):
    __tablename__ = "community_configs"

    id = Column(Integer, primary_key=True, index=True)
    community_id = Column(String, nullable=False, unique=True, index=True)
    leaderboard_destination = Column(String, nullable=True)
    reminder_destination = Column(String, nullable=True)
    mrr_destination = Column(String, nullable=True)           # MRR milestone announcements
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class FocusPeriod(Base):
    __tablename__ = "focus_periods"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    community_id = Column(String, nullable=False, index=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    leaderboard_finalized = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    user = relationship("User")
    goals = relationship("Goal", back_populates="period", order_by="Goal.position")

    @property
    def completed_goal_count(self) -> int:
        return sum(1 for goal in self.goals if goal.completed)

    @property
    def pending_goal_count(self) -> int:
        return sum(1 for goal in self.goals if not goal.completed)


class Goal(Base):
    __tablename__ = "goals"
    __table_args__ = (
        UniqueConstraint("period_id", "position", name="uq_goal_period_position"),
    )

    id = Column(Integer, primary_key=True, index=True)
    period_id = Column(Integer, ForeignKey("focus_periods.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    position = Column(Integer, nullable=False)    # 1-based, never reused
    points = Column(Integer, nullable=False)      # Fixed at creation by the estimator
    created_at = Column(DateTime, default=datetime.now)

    period = relationship("FocusPeriod", back_populates="goals")


class SprintPoints(Base):
    __tablename__ = "sprint_points"
    __table_args__ = (
        UniqueConstraint("period_id", "user_id", name="uq_sprint_period_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    period_id = Column(Integer, ForeignKey("focus_periods.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    community_id = Column(String, nullable=False, index=True)
    points = Column(Integer, default=0, nullable=False)

    # Copy of the period window, set once at creation
    window_start = Column(DateTime, nullable=False, index=True)
    window_end = Column(DateTime, nullable=False, index=True)

    points_updated_at = Column(DateTime, nullable=True)


class StreakState(Base):
    __tablename__ = "streak_states"
    __table_args__ = (
        UniqueConstraint("user_id", "community_id", name="uq_streak_user_community"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    community_id = Column(String, nullable=False, index=True)
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    total_check_ins = Column(Integer, default=0, nullable=False)
    last_check_in_at = Column(DateTime, nullable=True)


class CheckIn(Base):
    __tablename__ = "check_ins"
    __table_args__ = (
        UniqueConstraint("user_id", "community_id", "day", name="uq_check_in_user_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    community_id = Column(String, nullable=False, index=True)
    day = Column(Date, nullable=False, index=True)   # Local calendar day
    created_at = Column(DateTime, nullable=False)
    working_on = Column(String, nullable=True)
    accomplished = Column(String, nullable=True)
    blockers = Column(String, nullable=True)


class Win(Base):
    __tablename__ = "wins"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    community_id = Column(String, nullable=False, index=True)
    message = Column(String, nullable=False)
    category = Column(String, default=WIN_CATEGORY_OTHER)
    created_at = Column(DateTime, default=datetime.now, index=True)

    user = relationship("User")


class Challenge(Base):
    __tablename__ = "challenges"

    id = Column(Integer, primary_key=True, index=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    community_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String, default=CHALLENGE_STATUS_ACTIVE)   # active, completed, failed
    points_multiplier = Column(Float, default=1.5)
    created_at = Column(DateTime, default=datetime.now)

    participants = relationship("ChallengeParticipant", back_populates="challenge")


class ChallengeParticipant(Base):
    __tablename__ = "challenge_participants"
    __table_args__ = (
        UniqueConstraint("challenge_id", "user_id", name="uq_participant_challenge_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, default=PARTICIPANT_STATUS_ACTIVE)  # active, pending_validation, completed, failed
    proof_url = Column(String, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    challenge = relationship("Challenge", back_populates="participants")


class BuddyPair(Base):
    __tablename__ = "buddy_pairs"
    __table_args__ = (
        UniqueConstraint("user_id", "buddy_id", name="uq_buddy_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    community_id = Column(String, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    buddy_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    notify = Column(Boolean, default=True)   # Tell user_id when buddy_id completes a goal
    created_at = Column(DateTime, default=datetime.now)

    buddy = relationship("User", foreign_keys=[buddy_id])
    user = relationship("User", foreign_keys=[user_id])


class MrrEntry(Base):
    __tablename__ = "mrr_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    community_id = Column(String, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String, default=MRR_DEFAULT_CURRENCY, nullable=False)
    note = Column(String, nullable=True)
    recorded_at = Column(DateTime, default=datetime.now, nullable=False, index=True)

    user = relationship("User")


class MrrSettings(Base):
    __tablename__ = "mrr_settings"
    __table_args__ = (
        UniqueConstraint("user_id", "community_id", name="uq_mrr_settings_user_community"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    community_id = Column(String, nullable=False, index=True)
    is_public = Column(Boolean, default=False, nullable=False)     # Shown on the MRR leaderboard
    last_milestone_reached = Column(Integer, default=0, nullable=False)  # Cents, only ever grows
