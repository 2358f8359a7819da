from datetime import timedelta

import pytest

from studyflow.application.promotion_policy import (
    apply_promotion,
    decline_promotion,
    evaluate_promotion,
    is_eligible_for_promotion,
    next_tier,
)
from studyflow.domain.errors import InvalidOperationError
from studyflow.domain.models import Tier


@pytest.fixture
def ready_card(make_card):
    """A Reviewing card with a streak of 5 and 85% accuracy."""
    return make_card(tier=Tier.REVIEWING, correct_streak=5, total_correct=17, total_attempts=20)


def test_reviewing_card_with_streak_is_eligible(ready_card, now):
    assert is_eligible_for_promotion(ready_card, now)

    evaluation = evaluate_promotion(ready_card, now)
    assert evaluation.eligible
    assert evaluation.next_tier is Tier.MASTERED


def test_short_streak_is_not_eligible(ready_card, now):
    assert not is_eligible_for_promotion(ready_card.copy(correct_streak=4), now)


def test_low_accuracy_is_not_eligible(ready_card, now):
    assert not is_eligible_for_promotion(ready_card.copy(total_correct=15), now)


@pytest.mark.parametrize("tier", [Tier.MASTERED, Tier.INACTIVE])
def test_top_and_inactive_tiers_are_never_eligible(ready_card, now, tier):
    card = ready_card.copy(tier=tier)
    assert not is_eligible_for_promotion(card, now)
    assert evaluate_promotion(card, now).next_tier is None


def test_recent_offer_blocks_promotion(ready_card, now):
    card = ready_card.copy(last_promotion_offered_at=now - timedelta(days=2, hours=23))
    assert not is_eligible_for_promotion(card, now)


def test_offer_cooldown_expires_after_three_days(ready_card, now):
    card = ready_card.copy(last_promotion_offered_at=now - timedelta(days=3))
    assert is_eligible_for_promotion(card, now)


def test_next_tier_never_skips():
    assert next_tier(Tier.LEARNING) is Tier.REVIEWING
    assert next_tier(Tier.REVIEWING) is Tier.MASTERED
    assert next_tier(Tier.MASTERED) is None
    assert next_tier(Tier.INACTIVE) is None


def test_learning_needs_two_promotions_to_reach_mastered():
    tier, steps = Tier.LEARNING, 0
    while tier is not Tier.MASTERED:
        tier = next_tier(tier)
        steps += 1
    assert steps == 2


def test_apply_promotion_resets_streak_and_reschedules(make_card, now):
    card = make_card(correct_streak=5, total_correct=5, total_attempts=5)

    promoted = apply_promotion(card, Tier.REVIEWING, now)

    assert promoted.tier is Tier.REVIEWING
    assert promoted.correct_streak == 0
    assert promoted.total_attempts == 5
    assert promoted.last_promotion_offered_at == now
    # 3 days x 1.5 = 4.5, rounded half up
    assert promoted.next_due_at == now + timedelta(days=5)
    assert card.tier is Tier.LEARNING


def test_apply_promotion_rejects_skipping_a_tier(make_card, now):
    card = make_card(correct_streak=5, total_correct=5, total_attempts=5)
    with pytest.raises(InvalidOperationError):
        apply_promotion(card, Tier.MASTERED, now)


def test_apply_promotion_rejects_mastered_card(make_card, now):
    card = make_card(tier=Tier.MASTERED)
    with pytest.raises(InvalidOperationError):
        apply_promotion(card, Tier.MASTERED, now)


def test_decline_starts_cooldown(ready_card, now):
    declined = decline_promotion(ready_card, now)

    assert declined.tier is Tier.REVIEWING
    assert declined.last_promotion_offered_at == now
    assert not is_eligible_for_promotion(declined, now + timedelta(days=1))
    assert is_eligible_for_promotion(declined, now + timedelta(days=3))
