# state.py
from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Set

from .errors import InvalidTransition


class Status(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class StateName(str, Enum):
    """Well-known keys of the named-slot store."""
    OUTPUTS = "outputs"
    ENV = "env"
    STDOUT = "stdout"
    STDERR = "stderr"
    EXIT_CODE = "exit_code"


TERMINAL: Set[Status] = {Status.SUCCESS, Status.FAILED, Status.SKIPPED}

ALLOWED_TRANSITIONS: Dict[Status, Set[Status]] = {
    Status.PENDING: {Status.RUNNING, Status.SKIPPED},
    Status.RUNNING: {Status.SUCCESS, Status.FAILED, Status.SKIPPED},
    Status.SUCCESS: set(),
    Status.FAILED: set(),
    Status.SKIPPED: set(),
}


def short_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class State:
    """
    Lifecycle value owned by every runnable entity (run, job, step).

    pending -> running -> exactly one of success | failed | skipped.
    A pending entity may also be skipped directly.
    """

    def __init__(self) -> None:
        self.status: Status = Status.PENDING
        self.result: Optional[str] = None
        self.started_at: Optional[datetime] = None
        self.finished_at: Optional[datetime] = None
        self._stopped = False
        self._slots: Dict[StateName, Any] = {}

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _transition(self, to: Status) -> None:
        if to not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransition(f"Illegal transition: {self.status.value} -> {to.value}")
        self.status = to

    def start(self) -> None:
        self._transition(Status.RUNNING)
        self.started_at = _utcnow()

    def stop(self) -> None:
        if self.started_at is None:
            raise InvalidTransition("stop() called before start()")
        if self._stopped:
            raise InvalidTransition("stop() called twice")
        self._stopped = True
        self.finished_at = _utcnow()

    def succeed(self, result: Optional[str] = None) -> None:
        self._transition(Status.SUCCESS)
        self.result = result

    def fail(self, reason: str) -> None:
        self._transition(Status.FAILED)
        self.result = reason

    def skip(self, reason: str) -> None:
        self._transition(Status.SKIPPED)
        self.result = reason
        if self.started_at is None:
            self.finished_at = _utcnow()

    @contextmanager
    def lifecycle(self) -> Iterator["State"]:
        """start() on enter, stop() on every exit path."""
        self.start()
        try:
            yield self
        finally:
            self.stop()

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL

    # ------------------------------------------------------------------
    # Named slots
    # ------------------------------------------------------------------

    def get(self, key: StateName, default: Any = None) -> Any:
        return self._slots.get(StateName(key), default)

    def set(self, key: StateName, value: Any) -> None:
        self._slots[StateName(key)] = value

    def snapshot(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "result": self.result,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
