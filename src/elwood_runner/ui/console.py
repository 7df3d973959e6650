"""Terminal output for the elwood-runner CLI."""

from __future__ import annotations

import sys
import traceback
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from ..execution import Execution


class Console:
    """Prints run summaries and errors; stack traces only with --debug."""

    def __init__(self, debug: bool = False):
        self.debug = debug

    def print_run_started(self, workflow: str, workspace: str, job_count: int) -> None:
        print(f"\nRUN {workflow}")
        print(f"  workspace: {workspace}")
        print(f"  jobs:      {job_count}\n")

    def print_results(self, execution: Execution) -> None:
        """One line per job, one indented line per step with its result message."""
        banner = f"RESULTS ({execution.id})"
        print(f"\n{banner}\n{'=' * len(banner)}")
        for job in execution.jobs:
            print(f"  {job.name}: {job.status.value.upper()}")
            for step in job.steps:
                suffix = f" ({step.state.result})" if step.state.result else ""
                print(f"    {step.name}: {step.status.value.upper()}{suffix}")
        if execution.state.result:
            print(f"\n{execution.state.result}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[Iterable[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print a structured error to stderr.

        Args:
            title: Short error title
            message: What went wrong
            details: Extra lines, indented under the message
            suggestion: How to fix it
        """
        lines = [f"\nERROR: {title}", message]
        lines.extend(f"  {d}" for d in details or ())
        if suggestion:
            lines.append(f"\n{suggestion}")
        print("\n".join(lines), file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        if self.debug:
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        print(message)

    def print_debug(self, message: str) -> None:
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


_console: Optional[Console] = None


def get_console() -> Console:
    """Return the CLI's console, creating a non-debug one on first use."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    global _console
    _console = console
