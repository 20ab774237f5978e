"""Product defaults shared by services and workers."""

DEFAULT_INDUSTRY = "beauty"

# Average order value per industry, GBP.
INDUSTRY_AVG_ORDER_VALUE = {
    "beauty": 150,
    "hair": 120,
    "fitness": 80,
    "cleaning": 200,
    "plumbing": 300,
    "electrical": 250,
    "detailing": 180,
}
DEFAULT_AVG_ORDER_VALUE = 150
DEFAULT_CONVERSION_MULTIPLIER = 0.65

PRICING_TIERS = {
    "starter": {"price": 29, "currency": "GBP", "conversations_per_month": 500},
    "growth": {"price": 59, "currency": "GBP", "conversations_per_month": 2000},
    "pro": {"price": 99, "currency": "GBP", "conversations_per_month": -1},
}
# Plan names used by older onboarding forms.
LEGACY_PLANS = {"basic": "starter", "premium": "pro"}

MAX_FOLLOW_UPS = 2
FIRST_FOLLOW_UP_HOURS = 12
SECOND_FOLLOW_UP_HOURS = 48

JOB_MAX_ATTEMPTS = 3
JOB_RETRY_BACKOFF_SECONDS = 60
STATS_AGGREGATION_INTERVAL_SECONDS = 3600

# (limit, window_seconds)
RATE_LIMITS = {
    "message": (100, 15 * 60),
    "business": (10, 60),
    "global": (1000, 15 * 60),
    "webhook": (100, 60),
    "expensive": (10, 5 * 60),
}

# (template, delay_hours)
ONBOARDING_EMAILS = [
    ("welcome", 0),
    ("setup_guide", 24),
    ("best_practices", 72),
]

SESSION_MAX_AGE_HOURS = 24
