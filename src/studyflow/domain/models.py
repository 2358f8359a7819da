"""
Domain models for the scheduling engine.

These are pure data structures with no I/O or external dependencies.
"""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from ulid import ULID

from .constants import (
    DEFAULT_DAILY_CARD_BUDGET,
    DEFAULT_MAX_CARDS_PER_BATCH,
    DEFAULT_MAX_NOTIFICATIONS_PER_DAY,
    DEFAULT_NOTIFICATION_INTERVAL_MINUTES,
    DEFAULT_QUIET_HOURS_END,
    DEFAULT_QUIET_HOURS_START,
)


class Tier(str, Enum):
    """Difficulty / maturity bucket of a card."""

    LEARNING = "learning"  # daily
    REVIEWING = "reviewing"  # every few days
    MASTERED = "mastered"  # weekly or rarer
    INACTIVE = "inactive"  # manual only

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


def generate_card_id() -> str:
    """Generate a stable card ID using ULID."""
    return f"card_{ULID()}"


@dataclass
class Card:
    """
    A unit of study material plus its scheduling state.

    Attributes:
        id: Stable identifier, immutable after creation.
        question / answer: Content, opaque to the scheduler.
        tier: Current tier.
        correct_streak: Consecutive correct answers since the last reset.
        total_correct: Correct answers over the card's whole life.
        total_attempts: All answers, never decreases.
        next_due_at: When the card is next due. Always set.
        version: Optimistic-concurrency token, owned by the card store.
    """

    id: str
    question: str
    answer: str
    next_due_at: datetime
    created_at: datetime
    tier: Tier = Tier.LEARNING
    correct_streak: int = 0
    total_correct: int = 0
    total_attempts: int = 0
    last_studied_at: datetime | None = None
    last_promotion_offered_at: datetime | None = None
    average_response_time_ms: float = 0.0
    class_id: str | None = None
    version: int = 0

    @property
    def accuracy(self) -> float:
        """Overall accuracy, 0 when the card was never answered."""
        if self.total_attempts == 0:
            return 0.0
        return self.total_correct / self.total_attempts

    @property
    def is_active(self) -> bool:
        return self.tier is not Tier.INACTIVE

    def days_since_last_study(self, now: datetime) -> float:
        """Full days since the last answer; infinite if never studied."""
        if self.last_studied_at is None:
            return math.inf
        return (now - self.last_studied_at).days

    def days_overdue(self, now: datetime) -> int:
        """Full days past ``next_due_at``; 0 if not yet due."""
        if self.next_due_at >= now:
            return 0
        return (now - self.next_due_at).days

    def copy(self, **changes) -> "Card":
        return replace(self, **changes)


def new_card(
    question: str,
    answer: str,
    now: datetime,
    class_id: str | None = None,
    card_id: str | None = None,
) -> Card:
    """Create a Learning card that is due immediately."""
    return Card(
        id=card_id or generate_card_id(),
        question=question,
        answer=answer,
        next_due_at=now,
        created_at=now,
        class_id=class_id,
    )


class NotificationFrequency(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"

    @property
    def interval_minutes(self) -> int:
        return {"conservative": 150, "moderate": 90, "aggressive": 30}[self.value]

    @property
    def max_notifications_per_day(self) -> int:
        return {"conservative": 5, "moderate": 8, "aggressive": 16}[self.value]


class StudyMode(str, Enum):
    NORMAL = "normal"
    INTENSIVE = "intensive"
    EXAM = "exam"

    @property
    def daily_card_limit(self) -> int:
        return {"normal": 30, "intensive": 50, "exam": 100}[self.value]

    @property
    def max_cards_per_batch(self) -> int:
        return {"normal": 3, "intensive": 4, "exam": 5}[self.value]

    @property
    def frequency(self) -> NotificationFrequency:
        if self is StudyMode.EXAM:
            return NotificationFrequency.AGGRESSIVE
        return NotificationFrequency.MODERATE


@dataclass(frozen=True)
class SchedulingPreferences:
    """
    Read-only snapshot of the user's scheduling policy.

    Notifications are only scheduled while
    ``quiet_hours_start <= hour < quiet_hours_end``; everything outside
    that window is quiet.
    """

    daily_card_budget: int = DEFAULT_DAILY_CARD_BUDGET
    quiet_hours_start: int = DEFAULT_QUIET_HOURS_START
    quiet_hours_end: int = DEFAULT_QUIET_HOURS_END
    notification_interval_minutes: int = DEFAULT_NOTIFICATION_INTERVAL_MINUTES
    max_notifications_per_day: int = DEFAULT_MAX_NOTIFICATIONS_PER_DAY
    max_cards_per_batch: int = DEFAULT_MAX_CARDS_PER_BATCH
    weekends_enabled: bool = True
    priority_class_id: str | None = None
    notifications_enabled: bool = True
    allow_card_repetition: bool = True

    def with_frequency(self, frequency: NotificationFrequency) -> "SchedulingPreferences":
        return replace(
            self,
            notification_interval_minutes=frequency.interval_minutes,
            max_notifications_per_day=frequency.max_notifications_per_day,
        )

    @classmethod
    def from_study_mode(cls, mode: StudyMode, **overrides) -> "SchedulingPreferences":
        prefs = cls(
            daily_card_budget=mode.daily_card_limit,
            max_cards_per_batch=mode.max_cards_per_batch,
        ).with_frequency(mode.frequency)
        return replace(prefs, **overrides)


@dataclass(frozen=True)
class ConfigurationError:
    """A misconfigured preference, reported instead of raised."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class DailySelection:
    """Cards chosen for today, in study order."""

    overdue: list[Card] = field(default_factory=list)
    due_today: list[Card] = field(default_factory=list)
    learning: list[Card] = field(default_factory=list)
    archival_candidates: list[Card] = field(default_factory=list)  # reported, never selected
    errors: list[ConfigurationError] = field(default_factory=list)

    @property
    def cards(self) -> list[Card]:
        return self.overdue + self.due_today + self.learning

    @property
    def card_ids(self) -> list[str]:
        return [c.id for c in self.cards]

    def __len__(self) -> int:
        return len(self.overdue) + len(self.due_today) + len(self.learning)


@dataclass(frozen=True)
class NotificationBatch:
    scheduled_at: datetime
    card_ids: tuple[str, ...]


@dataclass
class NotificationPlan:
    """Result of batching a day's cards into reminders."""

    batches: list[NotificationBatch] = field(default_factory=list)
    errors: list[ConfigurationError] = field(default_factory=list)
    skipped_reason: str | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def total_cards(self) -> int:
        return sum(len(b.card_ids) for b in self.batches)


@dataclass(frozen=True)
class ScheduleResult:
    next_due_at: datetime
    card: Card


@dataclass(frozen=True)
class PromotionEvaluation:
    eligible: bool
    next_tier: Tier | None
