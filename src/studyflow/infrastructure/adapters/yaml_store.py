"""
YAML deck-file card store.

The deck file holds a single ``cards:`` list; timestamps are ISO-8601
strings and the tier is stored by its value. Writes go to a temporary file
that replaces the deck, so a crash never leaves a half-written deck.
"""

import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
import yaml.constructor

from studyflow.domain.errors import CardStoreError, WriteConflictError
from studyflow.domain.models import Card, Tier
from studyflow.domain.ports import CardStore

logger = logging.getLogger(__name__)

_TIMESTAMP_FIELDS = ("next_due_at", "created_at", "last_studied_at", "last_promotion_offered_at")


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that forbids duplicate keys."""

    def construct_mapping(self, node, deep=False):
        keys = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in keys:
                raise yaml.constructor.ConstructorError(
                    None, None, f"found duplicate key '{key}'", key_node.start_mark
                )
            keys.add(key)
        return super().construct_mapping(node, deep)


class YamlCardStore(CardStore):
    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def fetch_active_cards(self) -> list[Card]:
        with self._lock:
            return [c for c in self._load() if c.is_active]

    def fetch_all_cards(self) -> list[Card]:
        with self._lock:
            return self._load()

    def fetch_card(self, card_id: str) -> Card | None:
        with self._lock:
            return next((c for c in self._load() if c.id == card_id), None)

    def save_card(self, card: Card) -> None:
        with self._lock:
            cards = self._load()
            stored = card.copy(version=card.version + 1)
            for i, existing in enumerate(cards):
                if existing.id == card.id:
                    if existing.version != card.version:
                        raise WriteConflictError(card.id, card.version, existing.version)
                    cards[i] = stored
                    break
            else:
                cards.append(stored)
            self._dump(cards)

    def _load(self) -> list[Card]:
        if not self.path.exists():
            return []
        try:
            raw = yaml.load(self.path.read_text(encoding="utf-8"), Loader=UniqueKeyLoader) or {}
        except yaml.YAMLError as e:
            raise CardStoreError(f"Invalid deck file {self.path}: {e}") from e

        items = raw.get("cards", []) if isinstance(raw, dict) else []
        if not isinstance(items, list):
            raise CardStoreError(f"Invalid deck file {self.path}: 'cards' must be a list")

        cards = []
        for index, item in enumerate(items):
            try:
                cards.append(card_from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                raise CardStoreError(f"Invalid card #{index} in {self.path}: {e}") from e
        return cards

    def _dump(self, cards: list[Card]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = yaml.safe_dump(
            {"cards": [card_to_dict(c) for c in cards]},
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, self.path)
        logger.debug(f"Wrote {len(cards)} cards to {self.path}")


def card_to_dict(card: Card) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": card.id,
        "question": card.question,
        "answer": card.answer,
        "tier": card.tier.value,
        "correct_streak": card.correct_streak,
        "total_correct": card.total_correct,
        "total_attempts": card.total_attempts,
        "average_response_time_ms": card.average_response_time_ms,
        "class_id": card.class_id,
        "version": card.version,
    }
    for name in _TIMESTAMP_FIELDS:
        value = getattr(card, name)
        data[name] = value.isoformat() if value is not None else None
    return data


def card_from_dict(data: dict[str, Any]) -> Card:
    if not isinstance(data, dict):
        raise TypeError(f"expected a mapping, got {type(data).__name__}")
    timestamps = {name: _parse_timestamp(data.get(name)) for name in _TIMESTAMP_FIELDS}
    if timestamps["created_at"] is None or timestamps["next_due_at"] is None:
        raise ValueError("created_at and next_due_at are required")
    return Card(
        id=str(data["id"]),
        question=str(data.get("question", "")),
        answer=str(data.get("answer", "")),
        tier=Tier(data.get("tier", Tier.LEARNING.value)),
        correct_streak=int(data.get("correct_streak", 0)),
        total_correct=int(data.get("total_correct", 0)),
        total_attempts=int(data.get("total_attempts", 0)),
        average_response_time_ms=float(data.get("average_response_time_ms", 0.0)),
        class_id=data.get("class_id"),
        version=int(data.get("version", 0)),
        **timestamps,
    )


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    # Hand-written decks may contain unquoted timestamps, which YAML already parsed.
    moment = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    # Naive timestamps are read as local time
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment
