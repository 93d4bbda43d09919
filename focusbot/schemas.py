from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import List, Optional


# Identity
class UserRef(BaseModel):
    account_id: str = Field(..., min_length=1, max_length=64)
    community_id: str = Field(..., min_length=1, max_length=64)
    username: Optional[str] = Field(None, max_length=100)


# Focus periods and goals
class GoalCreate(BaseModel):
    user: UserRef
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)

class GoalComplete(BaseModel):
    user: UserRef
    position: int = Field(..., ge=1)

class GoalResponse(BaseModel):
    id: int
    position: int
    title: str
    description: Optional[str] = None
    points: int
    completed: bool
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class PeriodResponse(BaseModel):
    id: int
    user_id: int
    community_id: str
    start_date: datetime
    end_date: datetime
    leaderboard_finalized: bool
    day_number: int = 0
    days_remaining: int = 0
    goals: List[GoalResponse] = []

    class Config:
        from_attributes = True

class CompletionResponse(BaseModel):
    goal: GoalResponse
    points_awarded: int
    all_goals_completed: bool = False


# Ledger
class PointsAward(BaseModel):
    user: UserRef
    amount: int = Field(..., ge=1)

class PointsBalance(BaseModel):
    user_id: int
    total_points: int
    sprint_points: Optional[int] = None


# Streaks
class CheckInCreate(BaseModel):
    user: UserRef
    working_on: str = Field(default="", max_length=1000)
    accomplished: str = Field(default="", max_length=1000)
    blockers: str = Field(default="", max_length=1000)

class StreakResponse(BaseModel):
    user_id: int
    community_id: str
    current_streak: int = 0
    longest_streak: int = 0
    total_check_ins: int = 0
    last_check_in_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CheckInResult(BaseModel):
    day: date
    streak: StreakResponse
    bonus_points: int = 0
    points_awarded: int


# Leaderboards
class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    account_id: str
    username: Optional[str] = None
    points: int
    goals_completed: int = 0
    last_completed_at: Optional[datetime] = None
    reached_at: Optional[datetime] = None

class StreakLeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    account_id: str
    username: Optional[str] = None
    current_streak: int
    longest_streak: int
    total_check_ins: int


# Sweeps
class SweepResult(BaseModel):
    community_id: str
    periods_finalized: int = 0
    period_ids: List[int] = []
    leaderboard_posted: bool = False
    skipped_reason: Optional[str] = None


# Wins
class WinCreate(BaseModel):
    user: UserRef
    message: str = Field(..., min_length=1, max_length=2000)
    category: str = Field(default="other")

class WinResponse(BaseModel):
    id: int
    user_id: int
    community_id: str
    message: str
    category: str
    created_at: datetime

    class Config:
        from_attributes = True


# Challenges
class ChallengeCreate(BaseModel):
    creator: UserRef
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    days: int = Field(..., ge=1, le=90)
    participant_account_ids: List[str] = []
    multiplier: Optional[float] = None

class ChallengeSubmit(BaseModel):
    user: UserRef
    proof_url: str = Field(default="", max_length=500)

class ChallengeValidate(BaseModel):
    validator: UserRef
    target_account_id: str
    approved: bool = True

class ChallengeResponse(BaseModel):
    id: int
    community_id: str
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: str
    points_multiplier: float

    class Config:
        from_attributes = True


# Buddies
class BuddyCreate(BaseModel):
    user: UserRef
    buddy_account_id: str
    notify: bool = True


# Community settings
class CommunityConfigUpdate(BaseModel):
    leaderboard_destination: Optional[str] = None
    reminder_destination: Optional[str] = None
    mrr_destination: Optional[str] = None

class CommunityConfigResponse(BaseModel):
    community_id: str
    leaderboard_destination: Optional[str] = None
    reminder_destination: Optional[str] = None
    mrr_destination: Optional[str] = None

    class Config:
        from_attributes = True


# Revenue (MRR)
class MrrUpdate(BaseModel):
    user: UserRef
    amount: float = Field(..., ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    note: str = Field(default="", max_length=500)

class MrrEntryResponse(BaseModel):
    id: int
    user_id: int
    community_id: str
    amount: float
    currency: str
    note: Optional[str] = None
    recorded_at: datetime

    class Config:
        from_attributes = True

class MrrUpdateResult(BaseModel):
    entry: MrrEntryResponse
    previous_amount: Optional[float] = None
    growth_percent: float = 0.0
    milestone_reached: int = 0          # Cents; 0 when no new milestone
    milestone_label: Optional[str] = None

class MrrVisibilityUpdate(BaseModel):
    user: UserRef
    is_public: bool

class MrrSettingsResponse(BaseModel):
    user_id: int
    community_id: str
    is_public: bool
    last_milestone_reached: int

    class Config:
        from_attributes = True

class MrrStats(BaseModel):
    user_id: int
    community_id: str
    current_mrr: float = 0.0
    currency: Optional[str] = None
    all_time_high: float = 0.0
    monthly_growth: float = 0.0
    total_entries: int = 0
    first_entry_at: Optional[datetime] = None
    is_public: bool = False
    milestones_hit: int = 0
    next_milestone: Optional[int] = None

class MrrLeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    account_id: str
    username: Optional[str] = None
    amount: float
    currency: str
    recorded_at: datetime
