"""
Review scheduler: spaced-repetition intervals for a single card.

Given a card and an answer outcome, computes the card's next due date and
updates its counters and tier. Time is always passed in, never read from a
global clock. Cards are treated as values: every function returns a new card.
"""

import logging
import math
from datetime import datetime, timedelta

from studyflow.domain.constants import (
    ACCURACY_MULTIPLIERS,
    BASE_INTERVAL_DAYS,
    DEFAULT_RESPONSE_TIME_MS,
    FAST_RESPONSE_MULTIPLIER,
    FAST_RESPONSE_RATIO,
    INTERVAL_BOUNDS_DAYS,
    LOW_ACCURACY_MULTIPLIER,
    MASTERED_LAPSE_DAYS,
    RELEARN_BASE_MINUTES,
    RELEARN_CAP_MINUTES,
    RELEARN_STEP_MINUTES,
    RESPONSE_SMOOTHING_ALPHA,
    REVIEWING_LAPSE_DAYS,
    SLOW_RESPONSE_MULTIPLIER,
    SLOW_RESPONSE_RATIO,
    STREAK_BONUS_CAP,
    STREAK_BONUS_PER_ANSWER,
)
from studyflow.domain.errors import InvalidOperationError
from studyflow.domain.models import Card, ScheduleResult, Tier

logger = logging.getLogger(__name__)


def schedule_next(
    card: Card,
    was_correct: bool,
    now: datetime,
    response_time_ms: float | None = None,
) -> ScheduleResult:
    """
    Record one answer and compute when the card is due next.

    Args:
        card: Card snapshot as read from the store. Not mutated.
        was_correct: Whether the learner answered correctly.
        now: Time of the answer.
        response_time_ms: Optional answer latency, compared against the
            card's running average.

    Returns:
        ScheduleResult with the new due date and the updated card.

    Raises:
        InvalidOperationError: the card is Inactive.
    """
    if card.tier is Tier.INACTIVE:
        raise InvalidOperationError(f"Cannot schedule inactive card {card.id}")

    attempts = card.total_attempts + 1

    if not was_correct:
        updated = card.copy(
            correct_streak=0,
            total_attempts=attempts,
            last_studied_at=now,
            tier=demoted_tier(card.tier),
        )
        next_due = now_plus(now, _lapse_delay(card.tier, attempts))
        updated.next_due_at = next_due
        logger.debug(
            f"{card.id}: incorrect, {card.tier.value} -> {updated.tier.value}, due {next_due}"
        )
        return ScheduleResult(next_due_at=next_due, card=updated)

    updated = card.copy(
        correct_streak=card.correct_streak + 1,
        total_correct=card.total_correct + 1,
        total_attempts=attempts,
        last_studied_at=now,
    )
    days = correct_interval_days(updated, response_time_ms)
    next_due = now_plus(now, timedelta(days=days))
    updated.next_due_at = next_due
    logger.debug(f"{card.id}: correct, {updated.tier.value} interval {days}d")
    return ScheduleResult(next_due_at=next_due, card=updated)


def demoted_tier(tier: Tier) -> Tier:
    """Tier after an incorrect answer. Learning stays Learning."""
    if tier is Tier.MASTERED:
        return Tier.REVIEWING
    if tier is Tier.REVIEWING:
        return Tier.LEARNING
    return tier


def correct_interval_days(card: Card, response_time_ms: float | None = None) -> int:
    """
    Interval in days for a correct answer, clamped to the card's tier bounds.

    Uses the card's counters as they are, so callers pass the card *after*
    the answer has been counted.
    """
    base = BASE_INTERVAL_DAYS[card.tier.value]
    multiplier = performance_multiplier(card, response_time_ms)
    low, high = INTERVAL_BOUNDS_DAYS[card.tier.value]
    return max(low, min(high, _round_half_up(base * multiplier)))


def performance_multiplier(card: Card, response_time_ms: float | None = None) -> float:
    """
    Accuracy bucket, plus streak bonus, times an optional response-time factor.
    """
    multiplier = LOW_ACCURACY_MULTIPLIER
    for threshold, value in ACCURACY_MULTIPLIERS:
        if card.accuracy >= threshold:
            multiplier = value
            break

    multiplier += min(card.correct_streak * STREAK_BONUS_PER_ANSWER, STREAK_BONUS_CAP)

    if response_time_ms is not None and response_time_ms > 0:
        average = card.average_response_time_ms or DEFAULT_RESPONSE_TIME_MS
        if response_time_ms < average * FAST_RESPONSE_RATIO:
            multiplier *= FAST_RESPONSE_MULTIPLIER
        elif response_time_ms > average * SLOW_RESPONSE_RATIO:
            multiplier *= SLOW_RESPONSE_MULTIPLIER

    return multiplier


def update_average_response_time(card: Card, response_time_ms: float) -> Card:
    """Fold a new latency into the card's exponential moving average."""
    if card.average_response_time_ms == 0:
        average = float(response_time_ms)
    else:
        average = (
            card.average_response_time_ms * (1 - RESPONSE_SMOOTHING_ALPHA)
            + response_time_ms * RESPONSE_SMOOTHING_ALPHA
        )
    return card.copy(average_response_time_ms=average)


def now_plus(now: datetime, delta: timedelta) -> datetime:
    """
    ``now + delta``, falling back to ``now`` if the date overflows.

    A card that becomes due immediately is a recoverable scheduling miss.
    """
    try:
        return now + delta
    except OverflowError:
        logger.warning(f"Date overflow adding {delta} to {now}; card is due now")
        return now


def _lapse_delay(tier: Tier, attempts: int) -> timedelta:
    if tier is Tier.LEARNING:
        minutes = min(RELEARN_BASE_MINUTES + attempts * RELEARN_STEP_MINUTES, RELEARN_CAP_MINUTES)
        return timedelta(minutes=minutes)
    if tier is Tier.REVIEWING:
        return timedelta(days=REVIEWING_LAPSE_DAYS)
    return timedelta(days=MASTERED_LAPSE_DAYS)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
