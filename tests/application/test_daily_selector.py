import random
from datetime import timedelta

import pytest

from studyflow.application.daily_selector import (
    due_today_pool,
    overdue_pool,
    select_daily_cards,
)
from studyflow.domain.models import Tier


@pytest.fixture
def learning_cards(make_card, now):
    """Factory for Learning cards that are not due yet."""

    def _make(count, **kwargs):
        kwargs.setdefault("next_due_at", now + timedelta(hours=1))
        kwargs.setdefault("last_studied_at", now - timedelta(hours=1))
        kwargs.setdefault("total_correct", 2)
        kwargs.setdefault("total_attempts", 2)
        return [make_card(**kwargs) for _ in range(count)]

    return _make


def test_learning_rotation_prefers_unseen_cards(learning_cards, now, rng):
    seen = learning_cards(40)
    unseen = learning_cards(10, last_studied_at=now - timedelta(days=3))

    selection = select_daily_cards(seen + unseen, now, budget=30, rng=rng)

    assert len(selection) == 30
    assert selection.overdue == []
    assert selection.due_today == []
    assert [c.id for c in selection.learning[:10]] == [c.id for c in unseen]


def test_learning_rotation_then_prefers_struggling_cards(learning_cards, now, rng):
    fine = learning_cards(15)
    struggling = learning_cards(25, total_correct=1)
    unseen = learning_cards(10, last_studied_at=None)

    selection = select_daily_cards(fine + struggling + unseen, now, budget=30, rng=rng)

    ids = set(selection.card_ids)
    assert {c.id for c in unseen} <= ids
    assert len(ids & {c.id for c in struggling}) == 20
    assert not ids & {c.id for c in fine}


def test_recently_added_cards_come_before_the_rest(learning_cards, now, rng):
    old = learning_cards(10)
    recent = learning_cards(5, created_at=now - timedelta(days=2))

    selection = select_daily_cards(old + recent, now, budget=8, rng=rng)

    assert {c.id for c in recent} <= set(selection.card_ids)


def test_all_learning_cards_fit(learning_cards, now, rng):
    cards = learning_cards(5)
    selection = select_daily_cards(cards, now, budget=30, rng=rng)
    assert len(selection.learning) == 5


def test_overdue_gets_half_the_budget_when_crowded(make_card, now, rng):
    overdue = [
        make_card(tier=Tier.REVIEWING, next_due_at=now - timedelta(hours=i + 1))
        for i in range(20)
    ]
    due = [
        make_card(tier=Tier.REVIEWING, next_due_at=now + timedelta(minutes=i + 1))
        for i in range(20)
    ]

    selection = select_daily_cards(overdue + due, now, budget=10, rng=rng)

    assert len(selection.overdue) == 5
    assert len(selection.due_today) == 5
    # Most overdue first
    assert [c.id for c in selection.overdue] == [c.id for c in overdue[::-1][:5]]
    assert [c.id for c in selection.due_today] == [c.id for c in due[:5]]


def test_unused_budget_backfills_overdue(make_card, learning_cards, now, rng):
    overdue = [
        make_card(tier=Tier.REVIEWING, next_due_at=now - timedelta(hours=i + 1))
        for i in range(8)
    ]
    learning = learning_cards(2)

    selection = select_daily_cards(overdue + learning, now, budget=10, rng=rng)

    assert len(selection.overdue) == 8
    assert len(selection.learning) == 2
    assert len(selection) == 10


def test_overdue_learning_card_is_not_selected_twice(make_card, now, rng):
    card = make_card(next_due_at=now - timedelta(hours=3))

    selection = select_daily_cards([card], now, budget=10, rng=rng)

    assert selection.card_ids == [card.id]
    assert selection.overdue == [card]


def test_overdue_learning_cards_past_the_floor_still_rotate_in(
    make_card, learning_cards, now, rng
):
    stale = [
        make_card(
            next_due_at=now - timedelta(hours=i + 1),
            last_studied_at=now - timedelta(days=3),
        )
        for i in range(4)
    ]
    fresh = learning_cards(4)

    selection = select_daily_cards(stale + fresh, now, budget=4, rng=rng)

    assert set(selection.card_ids) == {c.id for c in stale}
    # The two most overdue fill the floor, the others win the rotation
    assert [c.id for c in selection.overdue] == [stale[3].id, stale[2].id]
    assert {c.id for c in selection.learning} == {stale[0].id, stale[1].id}


def test_backfill_skips_cards_taken_by_the_rotation(make_card, now, rng):
    cards = [make_card(next_due_at=now - timedelta(hours=i + 1)) for i in range(3)]

    selection = select_daily_cards(cards, now, budget=4, rng=rng)

    assert len(selection) == 3
    assert len(set(selection.card_ids)) == 3
    assert [c.id for c in selection.overdue] == [cards[2].id, cards[1].id]
    assert selection.learning == [cards[0]]


def test_cards_overdue_more_than_three_days_are_archival(make_card, now, rng):
    stale = make_card(tier=Tier.MASTERED, next_due_at=now - timedelta(days=5))
    late = make_card(tier=Tier.REVIEWING, next_due_at=now - timedelta(days=3, hours=2))

    selection = select_daily_cards([stale, late], now, budget=10, rng=rng)

    assert selection.card_ids == [late.id]
    assert selection.archival_candidates == [stale]


def test_stale_learning_card_still_rotates_in(make_card, now, rng):
    card = make_card(next_due_at=now - timedelta(days=6))

    selection = select_daily_cards([card], now, budget=10, rng=rng)

    assert selection.learning == [card]
    assert selection.archival_candidates == []


def test_due_today_uses_the_calendar_day(make_card, now):
    tonight = make_card(tier=Tier.REVIEWING, next_due_at=now.replace(hour=23, minute=30))
    tomorrow = make_card(tier=Tier.REVIEWING, next_due_at=now + timedelta(days=1))
    learning = make_card(next_due_at=now + timedelta(hours=2))

    pool = due_today_pool([tomorrow, tonight, learning], now)

    assert pool == [tonight]


def test_overdue_pool_window(make_card, now):
    recent = make_card(next_due_at=now - timedelta(minutes=1))
    old = make_card(next_due_at=now - timedelta(days=4))
    assert overdue_pool([old, recent], now) == [recent]


def test_inactive_cards_are_never_selected(make_card, now):
    rng = random.Random(3)
    for _ in range(50):
        cards = []
        for _ in range(rng.randint(0, 40)):
            cards.append(
                make_card(
                    tier=rng.choice(list(Tier)),
                    next_due_at=now + timedelta(hours=rng.randint(-120, 48)),
                )
            )
        selection = select_daily_cards(cards, now, budget=rng.randint(0, 30), rng=rng)
        assert all(c.tier is not Tier.INACTIVE for c in selection.cards)


def test_selection_never_exceeds_budget(make_card, now):
    rng = random.Random(11)
    for _ in range(100):
        cards = [
            make_card(
                tier=rng.choice([Tier.LEARNING, Tier.REVIEWING, Tier.MASTERED]),
                next_due_at=now + timedelta(hours=rng.randint(-96, 24)),
                last_studied_at=rng.choice([None, now - timedelta(days=1)]),
            )
            for _ in range(rng.randint(0, 60))
        ]
        budget = rng.randint(-2, 40)

        selection = select_daily_cards(cards, now, budget=budget, rng=rng)

        assert len(selection) <= max(budget, 0)
        assert len(set(selection.card_ids)) == len(selection)


def test_zero_budget_returns_nothing(learning_cards, now, rng):
    selection = select_daily_cards(learning_cards(5), now, budget=0, rng=rng)
    assert len(selection) == 0
    assert selection.errors == []


def test_negative_budget_is_a_configuration_error(learning_cards, now, rng):
    selection = select_daily_cards(learning_cards(5), now, budget=-1, rng=rng)

    assert len(selection) == 0
    assert [e.field for e in selection.errors] == ["daily_card_budget"]


def test_no_active_cards(make_card, now, rng):
    selection = select_daily_cards([make_card(tier=Tier.INACTIVE)], now, budget=10, rng=rng)
    assert len(selection) == 0


def test_same_seed_gives_same_rotation(learning_cards, now):
    cards = learning_cards(40)
    first = select_daily_cards(cards, now, budget=12, rng=random.Random(99))
    second = select_daily_cards(cards, now, budget=12, rng=random.Random(99))
    assert first.card_ids == second.card_ids
