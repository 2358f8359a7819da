"""Centralized constants for the StudyFlow scheduling engine.

All magic numbers and policy defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Review intervals ----------
BASE_INTERVAL_DAYS = {"learning": 1, "reviewing": 3, "mastered": 7}
INTERVAL_BOUNDS_DAYS = {"learning": (1, 3), "reviewing": (2, 14), "mastered": (7, 90)}

# (minimum accuracy, multiplier), checked top to bottom
ACCURACY_MULTIPLIERS = [(0.9, 1.5), (0.8, 1.2), (0.6, 1.0)]
LOW_ACCURACY_MULTIPLIER = 0.8
STREAK_BONUS_PER_ANSWER = 0.1
STREAK_BONUS_CAP = 0.5

DEFAULT_RESPONSE_TIME_MS = 5000.0
FAST_RESPONSE_RATIO = 0.7
SLOW_RESPONSE_RATIO = 1.5
FAST_RESPONSE_MULTIPLIER = 1.1
SLOW_RESPONSE_MULTIPLIER = 0.9
RESPONSE_SMOOTHING_ALPHA = 0.3

# ---------- Incorrect answers ----------
RELEARN_BASE_MINUTES = 10
RELEARN_STEP_MINUTES = 5
RELEARN_CAP_MINUTES = 240  # 4 hours
REVIEWING_LAPSE_DAYS = 1
MASTERED_LAPSE_DAYS = 2

# ---------- Promotion ----------
PROMOTION_MIN_STREAK = 5
PROMOTION_MIN_ACCURACY = 0.8
PROMOTION_COOLDOWN_DAYS = 3

# ---------- Daily selection ----------
DEFAULT_DAILY_CARD_BUDGET = 30
MAX_OVERDUE_DAYS = 3
UNSEEN_AFTER_DAYS = 2
STRUGGLING_ACCURACY = 0.7
RECENTLY_ADDED_DAYS = 7

# ---------- Notifications ----------
FIRST_NOTIFICATION_DELAY_MINUTES = 60
SMALL_POOL_LIMIT = 20
LARGE_POOL_LIMIT = 100
MEDIUM_BATCH_CAP = 3
LARGE_BATCH_CAP = 5
LEARNING_CAPACITY_SHARE = 0.6
REVIEWING_REMAINDER_SHARE = 0.7

DEFAULT_QUIET_HOURS_START = 9
DEFAULT_QUIET_HOURS_END = 21
DEFAULT_NOTIFICATION_INTERVAL_MINUTES = 90
DEFAULT_MAX_NOTIFICATIONS_PER_DAY = 8
DEFAULT_MAX_CARDS_PER_BATCH = 3
