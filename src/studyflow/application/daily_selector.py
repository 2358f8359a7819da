"""
Daily selector: which cards to study today.

Builds today's list by:
1. Taking overdue cards (at most 3 days late), most overdue first
2. Adding Reviewing/Mastered cards that fall due later today
3. Filling the rest with Learning cards, rotating when there are too many

Overdue cards get up to half the budget up front; any budget left after
the other pools is backfilled with the remaining overdue cards.
"""

import logging
import random
from collections.abc import Iterable
from datetime import date, datetime

from studyflow.domain.constants import (
    DEFAULT_DAILY_CARD_BUDGET,
    MAX_OVERDUE_DAYS,
    RECENTLY_ADDED_DAYS,
    STRUGGLING_ACCURACY,
    UNSEEN_AFTER_DAYS,
)
from studyflow.domain.models import Card, ConfigurationError, DailySelection, Tier

logger = logging.getLogger(__name__)

_SCHEDULED_TIERS = (Tier.REVIEWING, Tier.MASTERED)


def select_daily_cards(
    cards: Iterable[Card],
    now: datetime,
    budget: int = DEFAULT_DAILY_CARD_BUDGET,
    rng: random.Random | None = None,
) -> DailySelection:
    """
    Select today's cards under a card budget.

    Args:
        cards: All cards, in store order. Inactive cards are ignored.
        now: Current time.
        budget: Maximum number of cards to return.
        rng: Random source for the learning rotation.

    Returns:
        DailySelection whose ``cards`` never exceed ``budget``.
    """
    selection = DailySelection()

    if budget < 0:
        error = ConfigurationError("daily_card_budget", f"must not be negative, got {budget}")
        logger.warning(f"Configuration error: {error}")
        selection.errors.append(error)

    active = [c for c in cards if c.is_active]
    if budget <= 0 or not active:
        return selection

    rng = rng or random.Random()

    overdue = overdue_pool(active, now)
    overdue_count = min(len(overdue), budget // 2)
    floor = overdue[:overdue_count]
    floor_ids = {c.id for c in floor}

    due = due_today_pool(active, now)
    # Overdue Learning cards past the floor still compete in the rotation
    learning = [c for c in learning_pool(active) if c.id not in floor_ids]
    remaining = budget - overdue_count

    selection.due_today = due[:remaining]
    remaining -= len(selection.due_today)

    if remaining > 0:
        selection.learning = select_learning_cards(learning, remaining, now, rng)
        remaining -= len(selection.learning)

    picked_ids = {c.id for c in selection.learning}
    backfill = [c for c in overdue[overdue_count:] if c.id not in picked_ids]
    selection.overdue = floor + backfill[: max(remaining, 0)]

    selection.archival_candidates = [
        c for c in active if c.tier in _SCHEDULED_TIERS and c.days_overdue(now) > MAX_OVERDUE_DAYS
    ]

    logger.debug(
        f"Daily selection: overdue={len(selection.overdue)}/{len(overdue)} "
        f"due={len(selection.due_today)}/{len(due)} "
        f"learning={len(selection.learning)}/{len(learning)} budget={budget}"
    )
    return selection


def overdue_pool(cards: list[Card], now: datetime) -> list[Card]:
    """Cards past due by no more than ``MAX_OVERDUE_DAYS`` full days."""
    pool = [
        c for c in cards if c.next_due_at < now and c.days_overdue(now) <= MAX_OVERDUE_DAYS
    ]
    return sorted(pool, key=lambda c: c.next_due_at)


def due_today_pool(cards: list[Card], now: datetime) -> list[Card]:
    """Reviewing/Mastered cards not yet overdue whose due date is today."""
    today = now.date()
    pool = [
        c
        for c in cards
        if c.tier in _SCHEDULED_TIERS
        and c.next_due_at >= now
        and _local_date(c.next_due_at, now) <= today
    ]
    return sorted(pool, key=lambda c: c.next_due_at)


def learning_pool(cards: list[Card]) -> list[Card]:
    """Learning cards are eligible every day, newest first."""
    pool = [c for c in cards if c.tier is Tier.LEARNING]
    return sorted(pool, key=lambda c: c.created_at, reverse=True)


def select_learning_cards(
    cards: list[Card],
    limit: int,
    now: datetime,
    rng: random.Random,
) -> list[Card]:
    """
    Rotate through Learning cards when they do not all fit.

    Priority: not studied for 2+ days, then accuracy below 70%, then added
    in the last week, then a shuffled remainder.
    """
    if len(cards) <= limit:
        return list(cards)

    unseen = [c for c in cards if c.days_since_last_study(now) >= UNSEEN_AFTER_DAYS]
    struggling = [c for c in cards if c.accuracy < STRUGGLING_ACCURACY]
    recent = [c for c in cards if (now - c.created_at).days < RECENTLY_ADDED_DAYS]

    picked: list[Card] = []
    seen: set[str] = set()
    for group in (unseen, struggling, recent):
        for card in group:
            if card.id not in seen:
                seen.add(card.id)
                picked.append(card)

    rest = [c for c in cards if c.id not in seen]
    rng.shuffle(rest)
    picked.extend(rest)

    return picked[:limit]


def _local_date(moment: datetime, now: datetime) -> date:
    """Calendar date of ``moment`` in ``now``'s timezone."""
    if moment.tzinfo is not None and now.tzinfo is not None:
        moment = moment.astimezone(now.tzinfo)
    return moment.date()
