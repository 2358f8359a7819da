"""
Promotion policy: when a card may move up a tier, and the move itself.

The policy only answers "should we offer?". Promotion is confirmed by the
learner; demotion lives in the review scheduler.
"""

import logging
from datetime import datetime, timedelta

from studyflow.application.review_scheduler import correct_interval_days, now_plus
from studyflow.domain.constants import (
    PROMOTION_COOLDOWN_DAYS,
    PROMOTION_MIN_ACCURACY,
    PROMOTION_MIN_STREAK,
)
from studyflow.domain.errors import InvalidOperationError
from studyflow.domain.models import Card, PromotionEvaluation, Tier

logger = logging.getLogger(__name__)

_NEXT_TIER = {
    Tier.LEARNING: Tier.REVIEWING,
    Tier.REVIEWING: Tier.MASTERED,
}


def next_tier(tier: Tier) -> Tier | None:
    """The tier one step up, or None for Mastered and Inactive."""
    return _NEXT_TIER.get(tier)


def is_eligible_for_promotion(card: Card, now: datetime) -> bool:
    """
    True when the card has a streak of 5+, accuracy of 80%+, can still move
    up, and was not offered a promotion in the last 3 days.
    """
    if card.correct_streak < PROMOTION_MIN_STREAK:
        return False
    if card.accuracy < PROMOTION_MIN_ACCURACY:
        return False
    if next_tier(card.tier) is None:
        return False
    if card.last_promotion_offered_at is not None:
        if now - card.last_promotion_offered_at < timedelta(days=PROMOTION_COOLDOWN_DAYS):
            return False
    return True


def evaluate_promotion(card: Card, now: datetime) -> PromotionEvaluation:
    return PromotionEvaluation(
        eligible=is_eligible_for_promotion(card, now),
        next_tier=next_tier(card.tier),
    )


def apply_promotion(card: Card, target_tier: Tier, now: datetime) -> Card:
    """
    Move the card to ``target_tier`` and give it a fresh schedule there.

    The new due date is the correct-answer interval for the new tier; no
    answer is counted.

    Raises:
        InvalidOperationError: ``target_tier`` is not the card's next tier.
    """
    expected = next_tier(card.tier)
    if expected is None or target_tier is not expected:
        raise InvalidOperationError(
            f"Cannot promote {card.id} from {card.tier.value} to {target_tier.value}"
        )

    promoted = card.copy(
        tier=target_tier,
        correct_streak=0,
        last_promotion_offered_at=now,
    )
    days = correct_interval_days(promoted)
    promoted.next_due_at = now_plus(now, timedelta(days=days))
    logger.info(f"Promoted {card.id}: {card.tier.value} -> {target_tier.value}, due in {days}d")
    return promoted


def decline_promotion(card: Card, now: datetime) -> Card:
    """Record a declined offer so the cool-down applies to it too."""
    return card.copy(last_promotion_offered_at=now)
