# execution.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .job import Job
from .model import Workflow
from .spawner import SpawnRequest
from .state import State, Status, short_id

if TYPE_CHECKING:
    from .manager import Manager

logger = logging.getLogger(__name__)


class Execution:
    """
    One run of a workflow definition.

    Owns its jobs plus the scratch areas under <workspace>/<run-id>:
      stage/    shared build area, read/write for every step
      bin/      helper executables and downloaded actions
      context/  one directory per job, one per step below it
    """

    def __init__(self, manager: Manager, definition: Workflow):
        self.manager = manager
        self.definition = definition
        self.id = short_id("run")
        self.state = State()
        self.jobs: List[Job] = [Job(self, name, d) for name, d in definition.jobs.items()]

        self._stage_dir: Optional[Path] = None
        self._bin_dir: Optional[Path] = None
        self._context_dir: Optional[Path] = None

    def __repr__(self) -> str:
        return f"Execution(id={self.id!r}, status={self.status.value!r})"

    @property
    def status(self) -> Status:
        return self.state.status

    @property
    def stage_dir(self) -> Path:
        if self._stage_dir is None:
            raise RuntimeError("Stage dir not set")
        return self._stage_dir

    @property
    def bin_dir(self) -> Path:
        if self._bin_dir is None:
            raise RuntimeError("Bin dir not set")
        return self._bin_dir

    @property
    def context_dir(self) -> Path:
        if self._context_dir is None:
            raise RuntimeError("Context dir not set")
        return self._context_dir

    def get_job(self, name: str) -> Job:
        for job in self.jobs:
            if job.name == name:
                return job
        raise KeyError(name)

    def get_combined_state(self) -> Dict[str, Any]:
        return {
            **self.state.snapshot(),
            "id": self.id,
            "jobs": [job.get_combined_state() for job in self.jobs],
        }

    @property
    def exit_code(self) -> int:
        """
        0 unless a step failed; then the first failed step's action exit
        code, or 1 when it failed without one.
        """
        for job in self.jobs:
            for step in job.steps:
                if step.status is Status.FAILED:
                    return step.exit_code or 1
        return 0 if self.status is Status.SUCCESS else 1

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def prepare(self) -> None:
        try:
            self._stage_dir = self.manager.mkdir("workspace", self.id, "stage")
            self._bin_dir = self.manager.mkdir("workspace", self.id, "bin")
            self._context_dir = self.manager.mkdir("workspace", self.id, "context")

            for job in self.jobs:
                await job.prepare()
        except Exception as e:
            logger.error("Run %s could not be prepared: %s", self.id, e)
            self.state.skip(str(e))

    async def execute(self) -> None:
        logger.info("Running %s (%d jobs)", self.id, len(self.jobs))

        with self.state.lifecycle():
            for job in self.jobs:
                await job.execute()

            failed = [job.name for job in self.jobs if job.status is Status.FAILED]
            if failed:
                self.state.fail(f"Jobs failed: {', '.join(failed)}")
            else:
                self.state.succeed()

        logger.info("Run %s finished: %s", self.id, self.status.value)

    async def execute_action(self, request: SpawnRequest) -> int:
        """Spawner facade used by steps; runs as the configured uid/gid."""
        options = self.manager.options
        request.uid = options.execution_uid
        request.gid = options.execution_gid
        if request.cache_dir is None:
            request.cache_dir = self.bin_dir
        return await self.manager.spawner.spawn(request)
