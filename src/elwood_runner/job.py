# job.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .model import JobDefinition
from .state import State, Status, short_id
from .step import Step

if TYPE_CHECKING:
    from .execution import Execution

logger = logging.getLogger(__name__)


class Job:
    """
    A named unit of work: steps run strictly in declaration order.

    After the first failed step the remaining steps are not executed,
    they are marked skipped.
    """

    def __init__(self, execution: Execution, name: str, definition: JobDefinition):
        self.execution = execution
        self.name = name
        self.definition = definition
        self.id = short_id("job")
        self.state = State()
        self.steps: List[Step] = [Step(self, d) for d in definition.steps]
        self._context_dir: Optional[Path] = None

    def __repr__(self) -> str:
        return f"Job(name={self.name!r}, status={self.status.value!r})"

    @property
    def context_dir(self) -> Path:
        if self._context_dir is None:
            raise RuntimeError(f"Context dir not set for job {self.name}")
        return self._context_dir

    @property
    def status(self) -> Status:
        return self.state.status

    def get_step(self, name: str) -> Step:
        for step in self.steps:
            if step.name == name:
                return step
        raise KeyError(name)

    def get_context(self) -> Dict[str, Any]:
        outputs: Dict[str, str] = {}
        for step in self.steps:
            outputs.update(step.outputs)

        return {
            "name": self.name,
            "status": self.status.value,
            "result": self.state.result,
            "outputs": outputs,
        }

    def get_combined_state(self) -> Dict[str, Any]:
        return {
            **self.state.snapshot(),
            "id": self.id,
            "name": self.name,
            "steps": [step.get_combined_state() for step in self.steps],
        }

    async def prepare(self) -> None:
        self._context_dir = self.execution.context_dir / self.id
        self._context_dir.mkdir(parents=True)

        for step in self.steps:
            await step.prepare()

    async def execute(self) -> None:
        logger.info("Running job %s[%s]", self.name, self.id)

        with self.state.lifecycle():
            failed: Optional[Step] = None

            for step in self.steps:
                if failed is not None:
                    step.state.skip(f"Skipped because step {failed.name} failed")
                    continue

                await step.execute()

                if step.status is Status.FAILED:
                    failed = step

            if self.status is Status.RUNNING:
                self.state.succeed()

        logger.info("Job %s finished: %s", self.name, self.status.value)

    def fail(self, reason: str) -> None:
        """Mark the job failed; the first reason wins. Steps in flight are not cancelled."""
        if self.status is not Status.RUNNING:
            return
        logger.error("Job %s failed: %s", self.name, reason)
        self.state.fail(reason)
