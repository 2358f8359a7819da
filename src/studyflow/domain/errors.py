"""Exception hierarchy for StudyFlow."""


class StudyFlowError(Exception):
    """Base class for all StudyFlow errors."""


class InvalidOperationError(StudyFlowError):
    """A scheduling call violated its precondition (e.g. answering an Inactive card)."""


class CardStoreError(StudyFlowError):
    """Raised by card store adapters. Never retried by the core."""


class CardNotFoundError(CardStoreError):
    def __init__(self, card_id: str):
        super().__init__(f"Card not found: {card_id}")
        self.card_id = card_id


class WriteConflictError(CardStoreError):
    """The card changed in the store since it was read."""

    def __init__(self, card_id: str, expected: int, actual: int):
        super().__init__(
            f"Write conflict on {card_id}: expected version {expected}, store has {actual}"
        )
        self.card_id = card_id
        self.expected = expected
        self.actual = actual


class ConfigFileError(StudyFlowError):
    """The settings file exists but could not be read."""
