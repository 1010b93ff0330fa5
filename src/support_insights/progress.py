from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

INFO, SUCCESS, ERROR = "info", "success", "error"

_LOG_LEVELS = {INFO: logging.INFO, SUCCESS: logging.INFO, ERROR: logging.ERROR}


def classify_message(message: str) -> str:
    """'error' wins over 'success'; anything else is 'info'. Pure function of the text."""
    m = (message or "").lower()
    if "error" in m:
        return ERROR
    if "success" in m:
        return SUCCESS
    return INFO


def _utc_clock() -> str:
    return datetime.now(timezone.utc).strftime("%H:%M:%S")


@dataclass(frozen=True)
class ProgressEvent:
    timestamp: str
    message: str
    level: str

    def __str__(self) -> str:
        return f"[{self.timestamp}] {self.message}"


class ProgressLog:
    """
    Append-only, ordered status log for whatever surface displays the run.
    Pacing/animation belongs to that surface; events are recorded immediately.
    """

    def __init__(self, clock: Optional[Callable[[], str]] = None):
        self._clock = clock or _utc_clock
        self._events: List[ProgressEvent] = []

    def emit(self, message: str) -> ProgressEvent:
        ev = ProgressEvent(timestamp=self._clock(), message=message, level=classify_message(message))
        self._events.append(ev)
        logger.log(_LOG_LEVELS[ev.level], message)
        return ev

    def upload(self, kind: str, filename: str) -> ProgressEvent:
        return self.emit(f"Uploaded {kind} data file: {filename}")

    @property
    def events(self) -> List[ProgressEvent]:
        return list(self._events)

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [e.message for e in self._events if level is None or e.level == level]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))
