"""
Application-wide constants.
"""

# Storage
DEFAULT_DATABASE_URL = "sqlite:///./focusbot.db"

# Logging
DEFAULT_LOG_DIRECTORY_PROD = "/var/log/focusbot"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"

CORS_ALLOWED_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

# Focus periods
FOCUS_PERIOD_DAYS = 14
MINIMUM_GOALS_REQUIRED = 3
REMINDER_DAYS = (3, 7, 10, 12, 13)
INSUFFICIENT_GOALS_DAYS = (2, 3)

# Points
CHECK_IN_BASE_POINTS = 1
WIN_POINTS = 2
CHALLENGE_BASE_POINTS = 10

# Exact streak length -> bonus points (no thresholds, no accumulation)
STREAK_MILESTONES = {
    7: 10,
    14: 25,
    30: 50,
    60: 100,
    90: 200,
}

# Task difficulty estimation
ESTIMATE_MIN_POINTS = 1
ESTIMATE_MAX_POINTS = 10
ESTIMATE_DEFAULT_POINTS = 5
ESTIMATE_TIMEOUT_SECONDS = 10.0
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"

# Challenges
CHALLENGE_DEFAULT_MULTIPLIER = 1.5
CHALLENGE_MAX_MULTIPLIER = 3.0

CHALLENGE_STATUS_ACTIVE = "active"
CHALLENGE_STATUS_COMPLETED = "completed"
CHALLENGE_STATUS_FAILED = "failed"

PARTICIPANT_STATUS_ACTIVE = "active"
PARTICIPANT_STATUS_PENDING_VALIDATION = "pending_validation"
PARTICIPANT_STATUS_COMPLETED = "completed"
PARTICIPANT_STATUS_FAILED = "failed"

# Wins
WIN_CATEGORY_REVENUE = "revenue"
WIN_CATEGORY_PRODUCT = "product"
WIN_CATEGORY_MARKETING = "marketing"
WIN_CATEGORY_CUSTOMER = "customer"
WIN_CATEGORY_OTHER = "other"
WIN_CATEGORIES = (
    WIN_CATEGORY_REVENUE,
    WIN_CATEGORY_PRODUCT,
    WIN_CATEGORY_MARKETING,
    WIN_CATEGORY_CUSTOMER,
    WIN_CATEGORY_OTHER,
)

# Leaderboards
DEFAULT_LEADERBOARD_LIMIT = 10
DIGEST_LEADERBOARD_LIMIT = 5
DIGEST_WINS_LIMIT = 5

# Scheduler
DEFAULT_RUN_HOUR = 9
DEFAULT_DIGEST_HOUR = 10
SWEEP_TIME_BUDGET_SECONDS = 120

# Notifications
DEFAULT_WEBHOOK_TIMEOUT_SECONDS = 10

# Revenue (MRR) tracking
MRR_DEFAULT_CURRENCY = "USD"
MRR_DEFAULT_HISTORY_MONTHS = 6
# Milestones in cents: $100, $500, $1K, $5K, $10K, $25K, $50K, $100K
MRR_MILESTONES = (
    10_000,
    50_000,
    100_000,
    500_000,
    1_000_000,
    2_500_000,
    5_000_000,
    10_000_000,
)
