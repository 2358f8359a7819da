"""
Notification batcher: spread today's cards over reminder slots.

Stateless. Every call computes a fresh plan from its inputs, and a new plan
for the day supersedes any earlier one; cancelling already scheduled
reminders is the delivery layer's job.
"""

import logging
import random
from collections.abc import Iterable
from datetime import datetime, timedelta

from studyflow.domain.constants import (
    FIRST_NOTIFICATION_DELAY_MINUTES,
    LARGE_BATCH_CAP,
    LARGE_POOL_LIMIT,
    LEARNING_CAPACITY_SHARE,
    MEDIUM_BATCH_CAP,
    REVIEWING_REMAINDER_SHARE,
    SMALL_POOL_LIMIT,
)
from studyflow.domain.models import (
    Card,
    ConfigurationError,
    NotificationBatch,
    NotificationPlan,
    SchedulingPreferences,
    Tier,
)

logger = logging.getLogger(__name__)

# Shares as integer percentages so quota arithmetic stays exact.
_LEARNING_PCT = round(LEARNING_CAPACITY_SHARE * 100)
_REVIEWING_PCT = round(REVIEWING_REMAINDER_SHARE * 100)


def plan_notifications(
    cards: Iterable[Card],
    prefs: SchedulingPreferences,
    now: datetime,
    already_notified: set[str] | None = None,
    rng: random.Random | None = None,
) -> NotificationPlan:
    """
    Partition cards into time-stamped reminder batches for the rest of today.

    Args:
        cards: Today's selected cards.
        prefs: Scheduling preferences snapshot.
        now: Current time. Slots start one hour later.
        already_notified: IDs already sent in a reminder today.
        rng: Random source for within-tier picks and the final shuffle.

    Returns:
        NotificationPlan. Misconfiguration yields an empty plan with ``errors``.
    """
    errors = validate_preferences(prefs)
    if errors:
        for error in errors:
            logger.warning(f"Configuration error: {error}")
        return NotificationPlan(errors=errors)

    if not prefs.notifications_enabled:
        return NotificationPlan(skipped_reason="notifications disabled")
    if not prefs.weekends_enabled and now.weekday() >= 5:
        return NotificationPlan(skipped_reason="weekend")

    rng = rng or random.Random()
    notified = already_notified or set()

    eligible = _eligible_cards(cards, notified, prefs.allow_card_repetition)
    if not eligible:
        return NotificationPlan()

    times = notification_times(prefs, now)
    if not times:
        logger.debug(f"No notification slots left today after {now}")
        return NotificationPlan()

    size = batch_size(len(eligible), prefs.max_cards_per_batch)
    picked = allocate_by_tier(eligible, len(times) * size, prefs, notified, rng)
    rng.shuffle(picked)

    batches = []
    for i, scheduled_at in enumerate(times):
        chunk = picked[i * size : (i + 1) * size]
        if not chunk:
            break
        batches.append(NotificationBatch(scheduled_at=scheduled_at, card_ids=tuple(chunk)))

    logger.debug(
        f"Planned {len(batches)} reminders ({len(picked)}/{len(eligible)} cards, "
        f"batch size {size})"
    )
    return NotificationPlan(batches=batches)


def validate_preferences(prefs: SchedulingPreferences) -> list[ConfigurationError]:
    """Check the preferences the batcher depends on. Wrap-around quiet hours are rejected."""
    errors = []
    if not 0 <= prefs.quiet_hours_start <= 23:
        errors.append(
            ConfigurationError("quiet_hours_start", f"must be 0-23, got {prefs.quiet_hours_start}")
        )
    if not 1 <= prefs.quiet_hours_end <= 24:
        errors.append(
            ConfigurationError("quiet_hours_end", f"must be 1-24, got {prefs.quiet_hours_end}")
        )
    if prefs.quiet_hours_start >= prefs.quiet_hours_end:
        errors.append(
            ConfigurationError(
                "quiet_hours",
                f"start ({prefs.quiet_hours_start}) must be before end "
                f"({prefs.quiet_hours_end}); windows spanning midnight are not supported",
            )
        )
    if prefs.notification_interval_minutes <= 0:
        errors.append(
            ConfigurationError(
                "notification_interval_minutes",
                f"must be positive, got {prefs.notification_interval_minutes}",
            )
        )
    if prefs.max_notifications_per_day < 0:
        errors.append(
            ConfigurationError(
                "max_notifications_per_day",
                f"must not be negative, got {prefs.max_notifications_per_day}",
            )
        )
    if prefs.max_cards_per_batch <= 0:
        errors.append(
            ConfigurationError(
                "max_cards_per_batch", f"must be positive, got {prefs.max_cards_per_batch}"
            )
        )
    return errors


def notification_times(prefs: SchedulingPreferences, now: datetime) -> list[datetime]:
    """
    Candidate send times from one hour after ``now`` until midnight.

    Slots outside ``[quiet_hours_start, quiet_hours_end)`` are skipped and do
    not count towards ``max_notifications_per_day``.
    """
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end_of_day = start_of_day + timedelta(days=1)
    step = timedelta(minutes=prefs.notification_interval_minutes)

    times: list[datetime] = []
    current = now + timedelta(minutes=FIRST_NOTIFICATION_DELAY_MINUTES)
    while current < end_of_day and len(times) < prefs.max_notifications_per_day:
        if prefs.quiet_hours_start <= current.hour < prefs.quiet_hours_end:
            times.append(current)
        current += step
    return times


def batch_size(total_cards: int, max_cards_per_batch: int) -> int:
    """Single-card reminders for small days, small batches for busy ones."""
    if total_cards < SMALL_POOL_LIMIT:
        return 1
    if total_cards < LARGE_POOL_LIMIT:
        return min(max_cards_per_batch, MEDIUM_BATCH_CAP)
    return min(max_cards_per_batch, LARGE_BATCH_CAP)


def allocate_by_tier(
    cards: list[Card],
    capacity: int,
    prefs: SchedulingPreferences,
    notified: set[str],
    rng: random.Random,
) -> list[str]:
    """
    Fill ``capacity`` slots: up to 60% Learning, up to 70% of the rest
    Reviewing, the remainder Mastered. Returns card IDs.

    A tier with cards always gets at least one slot while any remain, so a
    single-slot day still reminds about Learning cards.
    """
    learning = _tier_order(cards, Tier.LEARNING, prefs, notified, rng)
    reviewing = _tier_order(cards, Tier.REVIEWING, prefs, notified, rng)
    mastered = _tier_order(cards, Tier.MASTERED, prefs, notified, rng)

    picked = learning[: _quota(capacity, _LEARNING_PCT, learning)]
    rest = capacity - len(picked)

    from_reviewing = reviewing[: _quota(rest, _REVIEWING_PCT, reviewing)]
    picked += from_reviewing
    rest -= len(from_reviewing)

    picked += mastered[:rest]
    return [c.id for c in picked]


def _quota(slots: int, pct: int, pool: list[Card]) -> int:
    share = slots * pct // 100
    if share == 0 and pool and slots > 0:
        return 1
    return share


def _eligible_cards(
    cards: Iterable[Card], notified: set[str], allow_repetition: bool
) -> list[Card]:
    eligible = []
    seen: set[str] = set()
    for card in cards:
        if not card.is_active or card.id in seen:
            continue
        if card.id in notified and not allow_repetition:
            continue
        seen.add(card.id)
        eligible.append(card)
    return eligible


def _tier_order(
    cards: list[Card],
    tier: Tier,
    prefs: SchedulingPreferences,
    notified: set[str],
    rng: random.Random,
) -> list[Card]:
    """
    Random order within a tier; fresh cards before already-notified ones,
    and the priority class first within each.
    """
    groups: list[list[Card]] = [[], [], [], []]
    for card in cards:
        if card.tier is not tier:
            continue
        repeated = card.id in notified
        preferred = prefs.priority_class_id is not None and card.class_id == prefs.priority_class_id
        index = (2 if repeated else 0) + (0 if preferred else 1)
        groups[index].append(card)

    ordered: list[Card] = []
    for group in groups:
        rng.shuffle(group)
        ordered.extend(group)
    return ordered
