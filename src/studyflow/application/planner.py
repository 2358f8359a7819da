"""
Study planner, the application layer orchestrator.

Wires the card store, clock and preferences into the pure scheduling
functions and exposes the operations the UI / session layer calls.
"""

import logging
import random
from datetime import datetime

from studyflow.domain.errors import CardNotFoundError
from studyflow.domain.models import (
    Card,
    DailySelection,
    NotificationPlan,
    PromotionEvaluation,
    SchedulingPreferences,
    Tier,
)
from studyflow.domain.ports import CardStore, Clock

from . import promotion_policy
from .daily_selector import select_daily_cards
from .notification_batcher import plan_notifications
from .review_scheduler import schedule_next, update_average_response_time

logger = logging.getLogger(__name__)


class StudyPlanner:
    """
    Application service for today's plan and per-answer scheduling.

    Follows Dependency Inversion: depends on the CardStore and Clock ports,
    not concrete adapters. Store errors are never caught or retried here.
    """

    def __init__(
        self,
        store: CardStore,
        clock: Clock,
        preferences: SchedulingPreferences | None = None,
        rng: random.Random | None = None,
    ):
        """
        Args:
            store: Card persistence port.
            clock: Time source used when a call does not pass ``now``.
            preferences: Default preferences snapshot.
            rng: Random source for rotations and shuffles; seed it in tests.
        """
        self.store = store
        self._clock = clock
        self.preferences = preferences or SchedulingPreferences()
        self._rng = rng or random.Random()

    def now(self, now: datetime | None = None) -> datetime:
        return now if now is not None else self._clock.now()

    def compute_daily_selection(
        self,
        now: datetime | None = None,
        prefs: SchedulingPreferences | None = None,
    ) -> DailySelection:
        prefs = prefs or self.preferences
        cards = self.store.fetch_active_cards()
        return select_daily_cards(cards, self.now(now), prefs.daily_card_budget, self._rng)

    def compute_notification_plan(
        self,
        selection: DailySelection,
        prefs: SchedulingPreferences | None = None,
        now: datetime | None = None,
        already_notified: set[str] | None = None,
    ) -> NotificationPlan:
        return plan_notifications(
            selection.cards,
            prefs or self.preferences,
            self.now(now),
            already_notified=already_notified,
            rng=self._rng,
        )

    def record_answer(
        self,
        card: Card,
        was_correct: bool,
        response_time_ms: float | None = None,
        now: datetime | None = None,
    ) -> Card:
        """
        Schedule a card after an answer. Returns the card for the caller to persist.

        Raises:
            InvalidOperationError: the card is Inactive.
        """
        result = schedule_next(card, was_correct, self.now(now), response_time_ms)
        updated = result.card
        if response_time_ms is not None and response_time_ms > 0:
            updated = update_average_response_time(updated, response_time_ms)
        return updated

    def evaluate_promotion(self, card: Card, now: datetime | None = None) -> PromotionEvaluation:
        return promotion_policy.evaluate_promotion(card, self.now(now))

    def apply_promotion(self, card: Card, target_tier: Tier, now: datetime | None = None) -> Card:
        return promotion_policy.apply_promotion(card, target_tier, self.now(now))

    def decline_promotion(self, card: Card, now: datetime | None = None) -> Card:
        return promotion_policy.decline_promotion(card, self.now(now))

    # Store-backed helpers: fetch, compute, save.

    def get_card(self, card_id: str) -> Card:
        card = self.store.fetch_card(card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        return card

    def submit_answer(
        self,
        card_id: str,
        was_correct: bool,
        response_time_ms: float | None = None,
        now: datetime | None = None,
    ) -> tuple[Card, PromotionEvaluation]:
        """Record and persist an answer; also report whether to offer promotion."""
        now = self.now(now)
        updated = self.record_answer(self.get_card(card_id), was_correct, response_time_ms, now)
        self.store.save_card(updated)
        logger.info(
            f"Answer on {card_id}: {'correct' if was_correct else 'incorrect'}, "
            f"{updated.tier.value}, due {updated.next_due_at.isoformat()}"
        )
        return self.get_card(card_id), self.evaluate_promotion(updated, now)

    def promote(
        self, card_id: str, target_tier: Tier | None = None, now: datetime | None = None
    ) -> Card:
        """Promote and persist. Defaults to the card's next tier."""
        card = self.get_card(card_id)
        target = target_tier or promotion_policy.next_tier(card.tier) or card.tier
        self.store.save_card(self.apply_promotion(card, target, now))
        return self.get_card(card_id)

    def decline(self, card_id: str, now: datetime | None = None) -> Card:
        self.store.save_card(self.decline_promotion(self.get_card(card_id), now))
        return self.get_card(card_id)
