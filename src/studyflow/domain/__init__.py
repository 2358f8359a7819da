# Domain Package
from .errors import (
    CardNotFoundError,
    CardStoreError,
    InvalidOperationError,
    StudyFlowError,
    WriteConflictError,
)
from .models import (
    Card,
    ConfigurationError,
    DailySelection,
    NotificationBatch,
    NotificationPlan,
    PromotionEvaluation,
    SchedulingPreferences,
    ScheduleResult,
    Tier,
    new_card,
)
from .ports import CardStore, Clock

__all__ = [
    "Card",
    "CardNotFoundError",
    "CardStore",
    "CardStoreError",
    "Clock",
    "ConfigurationError",
    "DailySelection",
    "InvalidOperationError",
    "NotificationBatch",
    "NotificationPlan",
    "PromotionEvaluation",
    "ScheduleResult",
    "SchedulingPreferences",
    "StudyFlowError",
    "Tier",
    "WriteConflictError",
    "new_card",
]
