# Application Package
from .daily_selector import select_daily_cards
from .notification_batcher import plan_notifications
from .planner import StudyPlanner
from .promotion_policy import (
    apply_promotion,
    evaluate_promotion,
    is_eligible_for_promotion,
    next_tier,
)
from .review_scheduler import schedule_next, update_average_response_time

__all__ = [
    "StudyPlanner",
    "apply_promotion",
    "evaluate_promotion",
    "is_eligible_for_promotion",
    "next_tier",
    "plan_notifications",
    "schedule_next",
    "select_daily_cards",
    "update_average_response_time",
]
