# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


class RunnerError(Exception):
    """Base class for every error raised by the runtime."""


class ValidationError(RunnerError):
    """Missing or invalid configuration, or an invalid workflow definition."""


class UnknownFolder(ValidationError):
    def __init__(self, scope: str):
        super().__init__(f"Unknown folder: {scope}")
        self.scope = scope


class UnsupportedProtocol(RunnerError):
    def __init__(self, protocol: str):
        super().__init__(f"Unsupported protocol: {protocol}")
        self.protocol = protocol


class InvalidTransition(RunnerError):
    """A lifecycle operation was invoked out of sequence."""


@dataclass
class ActionExecutionFailure(RunnerError):
    """
    Structured step failure, enough context for:
      - clean CLI output
      - the message recorded on the failed step
    """
    step: str
    message: str
    exit_code: int | None = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message
