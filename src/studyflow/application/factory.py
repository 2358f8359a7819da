"""
Planner Factory
Centralizes the logic for selecting the card store and wiring the planner.
"""

import logging
import random

from studyflow.application.config import AppConfig
from studyflow.application.planner import StudyPlanner
from studyflow.domain.ports import CardStore, Clock
from studyflow.infrastructure.adapters.memory_store import InMemoryCardStore
from studyflow.infrastructure.adapters.yaml_store import YamlCardStore
from studyflow.infrastructure.clock import SystemClock

logger = logging.getLogger(__name__)


def get_card_store(config: AppConfig) -> CardStore:
    """
    Returns the CardStore implementation selected by config.
    """
    if config.store_backend == "memory":
        return InMemoryCardStore()
    return YamlCardStore(config.deck_path)


def get_planner(
    config: AppConfig,
    store: CardStore | None = None,
    clock: Clock | None = None,
) -> StudyPlanner:
    """
    Build a StudyPlanner from config. A configured seed makes plans reproducible.
    """
    store = store or get_card_store(config)
    rng = random.Random(config.seed) if config.seed is not None else random.Random()
    logger.debug(f"Planner using {type(store).__name__}")
    return StudyPlanner(
        store=store,
        clock=clock or SystemClock(),
        preferences=config.to_preferences(),
        rng=rng,
    )
