"""Append-only, stage-tagged event record for a pipeline run.

WHY: The caller of the pipeline has no separate error channel. Stage
transitions, external call outcomes, human edits and failures must all
be readable afterwards in order, tagged with the stage that was active
at the time.

HOW: RunLog wraps a list of frozen LogEntry records. append() is the only
writer; readers get tuple snapshots. Each entry is mirrored to the stdlib
logger so operators see the same events in the service logs, and an
optional listener callable receives entries as they are appended (the CLI
uses it to stream status lines to stderr).

RULES:
- Entries are never modified or removed during a run
- clear() exists for reset only
- No deduplication, no size cap
- Timestamps are epoch seconds (time.time())
"""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from autoremix.core.models import Stage

logger = logging.getLogger(__name__)


class LogLevel(str, enum.Enum):
    """Severity of a run log entry."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_STDLIB_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class LogEntry:
    """One immutable run log record."""

    timestamp: float
    level: LogLevel
    message: str
    stage: Stage

    def clock(self) -> str:
        """Local wall-clock time of the entry as HH:MM:SS."""
        return time.strftime("%H:%M:%S", time.localtime(self.timestamp))

    def format(self) -> str:
        return "[{}] [{}] {}".format(self.clock(), self.stage.value, self.message)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "message": self.message,
            "stage": self.stage.value,
        }


class RunLog:
    """Ordered, append-only sequence of LogEntry records."""

    def __init__(
        self,
        listener: Callable[[LogEntry], None] | None = None,
    ) -> None:
        self._entries: list[LogEntry] = []
        self._listener = listener

    def append(self, level: LogLevel, message: str, stage: Stage) -> LogEntry:
        """Record one event and notify the listener, if any.

        RULES:
        - level is coerced through LogLevel, so "error" and LogLevel.ERROR
          are equivalent
        - The listener is called after the entry is stored
        """
        entry = LogEntry(
            timestamp=time.time(),
            level=LogLevel(level),
            message=message,
            stage=stage,
        )
        self._entries.append(entry)
        logger.log(_STDLIB_LEVELS[entry.level], "[%s] %s", stage.value, message)
        if self._listener is not None:
            self._listener(entry)
        return entry

    def info(self, message: str, stage: Stage) -> LogEntry:
        return self.append(LogLevel.INFO, message, stage)

    def success(self, message: str, stage: Stage) -> LogEntry:
        return self.append(LogLevel.SUCCESS, message, stage)

    def warning(self, message: str, stage: Stage) -> LogEntry:
        return self.append(LogLevel.WARNING, message, stage)

    def error(self, message: str, stage: Stage) -> LogEntry:
        return self.append(LogLevel.ERROR, message, stage)

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    @property
    def last(self) -> LogEntry | None:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(tuple(self._entries))
