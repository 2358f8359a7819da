import itertools
import random
from datetime import datetime, timedelta, timezone

import pytest

from studyflow.domain.models import Card, Tier

# A Wednesday morning, in UTC so date arithmetic is unambiguous.
NOW = datetime(2026, 10, 14, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def rng():
    """Seeded random source so shuffles are reproducible."""
    return random.Random(1234)


@pytest.fixture
def make_card(now):
    """Factory for cards with sensible defaults; override any field by keyword."""
    counter = itertools.count(1)

    def _make(**kwargs) -> Card:
        n = next(counter)
        fields = {
            "id": f"card_{n:03d}",
            "question": f"Question {n}",
            "answer": f"Answer {n}",
            "next_due_at": now,
            "created_at": now - timedelta(days=30),
            "tier": Tier.LEARNING,
        }
        fields.update(kwargs)
        return Card(**fields)

    return _make


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config and decks
    monkeypatch.setenv("HOME", str(home))
    for name in (
        "STUDYFLOW_DECK_PATH",
        "STUDYFLOW_STORE_BACKEND",
        "STUDYFLOW_SEED",
        "STUDYFLOW_STUDY_MODE",
        "STUDYFLOW_DAILY_CARD_BUDGET",
    ):
        monkeypatch.delenv(name, raising=False)
    return home
