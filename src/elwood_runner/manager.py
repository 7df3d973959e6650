# manager.py
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .config import ManagerOptions
from .errors import UnknownFolder
from .execution import Execution
from .model import Workflow
from .spawner import ProcessSpawner, SandboxSpawner
from .state import Status

logger = logging.getLogger(__name__)


class Manager:
    """Process-wide entry point: owns the workspace root and the run registry."""

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        spawner: Optional[ProcessSpawner] = None,
    ) -> Manager:
        return cls(ManagerOptions.from_env(environ), spawner=spawner)

    def __init__(self, options: ManagerOptions, *, spawner: Optional[ProcessSpawner] = None):
        self.options = options
        self.spawner: ProcessSpawner = spawner or SandboxSpawner()
        self.executions: Dict[str, Execution] = {}

    @property
    def workspace_dir(self) -> Path:
        return self.options.workspace_dir

    def mkdir(self, scope: str, *parts: str) -> Path:
        if scope != "workspace":
            raise UnknownFolder(scope)

        path = self.workspace_dir.joinpath(*parts)
        path.mkdir(parents=True, exist_ok=True)
        return path

    async def prepare(self) -> None:
        logger.info("Preparing workspace %s", self.workspace_dir)
        self.mkdir("workspace")

    async def execute_definition(self, definition: Union[Workflow, Mapping[str, Any]]) -> Execution:
        execution = Execution(self, Workflow.parse(definition))
        self.executions[execution.id] = execution

        await execution.prepare()

        # a failed prepare() leaves the run skipped
        if execution.status is Status.PENDING:
            await execution.execute()

        return execution

    def get_execution(self, execution_id: str) -> Execution:
        return self.executions[execution_id]

    async def cleanup(self) -> None:
        """Delete everything under the workspace root."""
        for entry in self.workspace_dir.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
