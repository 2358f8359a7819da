"""StudyFlow: spaced-repetition scheduling for flashcards."""

from studyflow.consts import VERSION

__version__ = VERSION
