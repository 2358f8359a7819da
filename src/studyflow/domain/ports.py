"""
Ports (interfaces) for the scheduling engine's collaborators.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import Card


class Clock(ABC):
    """Supplies the current time."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class CardStore(ABC):
    """
    Port for card persistence.

    Implementations:
        - InMemoryCardStore: process-local dict, used by tests and the API.
        - YamlCardStore: a deck file on disk, used by the CLI.
    """

    @abstractmethod
    def fetch_active_cards(self) -> list[Card]:
        """
        Return every card that is not Inactive, in stable store order.
        """
        pass

    @abstractmethod
    def fetch_card(self, card_id: str) -> Card | None:
        """
        Return the card with this ID, or None.
        """
        pass

    @abstractmethod
    def save_card(self, card: Card) -> None:
        """
        Insert or update a card.

        Raises:
            WriteConflictError: the stored version differs from ``card.version``.
        """
        pass
