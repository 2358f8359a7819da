"""Clock adapters."""

from datetime import datetime, timedelta

from studyflow.domain.ports import Clock


class SystemClock(Clock):
    """Wall-clock time in the local timezone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class FixedClock(Clock):
    """A clock that only moves when told to. Used by tests and replays."""

    def __init__(self, moment: datetime):
        self._moment = moment

    def now(self) -> datetime:
        return self._moment

    def advance(self, **kwargs) -> datetime:
        self._moment += timedelta(**kwargs)
        return self._moment
