"""
In-memory card store.

Keeps cards in insertion order. Each ``save_card`` is a compare-and-swap on
the card's version, so two answers to the same card cannot interleave.
"""

import threading

from studyflow.domain.errors import WriteConflictError
from studyflow.domain.models import Card
from studyflow.domain.ports import CardStore


class InMemoryCardStore(CardStore):
    def __init__(self, cards: list[Card] | None = None):
        self._cards: dict[str, Card] = {}
        self._lock = threading.Lock()
        for card in cards or []:
            self._cards[card.id] = card.copy()

    def fetch_active_cards(self) -> list[Card]:
        with self._lock:
            return [c.copy() for c in self._cards.values() if c.is_active]

    def fetch_all_cards(self) -> list[Card]:
        with self._lock:
            return [c.copy() for c in self._cards.values()]

    def fetch_card(self, card_id: str) -> Card | None:
        with self._lock:
            card = self._cards.get(card_id)
            return card.copy() if card else None

    def save_card(self, card: Card) -> None:
        with self._lock:
            existing = self._cards.get(card.id)
            if existing is not None and existing.version != card.version:
                raise WriteConflictError(card.id, card.version, existing.version)
            self._cards[card.id] = card.copy(version=card.version + 1)

    def __len__(self) -> int:
        return len(self._cards)
