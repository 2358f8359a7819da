"""Manual card lifecycle: creation and the user-driven Inactive transitions."""

import logging
from datetime import datetime

from studyflow.domain.errors import CardNotFoundError, InvalidOperationError
from studyflow.domain.models import Card, Tier, new_card
from studyflow.domain.ports import CardStore

logger = logging.getLogger(__name__)


def add_card(
    store: CardStore,
    question: str,
    answer: str,
    now: datetime,
    class_id: str | None = None,
) -> Card:
    card = new_card(question, answer, now, class_id=class_id)
    store.save_card(card)
    logger.info(f"Added {card.id}")
    return card


def deactivate_card(store: CardStore, card_id: str) -> Card:
    """Exclude a card from selection and reminders until reactivated."""
    card = _require(store, card_id)
    if card.tier is Tier.INACTIVE:
        return card
    store.save_card(card.copy(tier=Tier.INACTIVE))
    return _require(store, card_id)


def reactivate_card(store: CardStore, card_id: str, now: datetime) -> Card:
    """Bring an Inactive card back as Learning, due immediately."""
    card = _require(store, card_id)
    if card.tier is not Tier.INACTIVE:
        raise InvalidOperationError(f"Card {card_id} is not inactive ({card.tier.value})")
    store.save_card(card.copy(tier=Tier.LEARNING, correct_streak=0, next_due_at=now))
    return _require(store, card_id)


def _require(store: CardStore, card_id: str) -> Card:
    card = store.fetch_card(card_id)
    if card is None:
        raise CardNotFoundError(card_id)
    return card
