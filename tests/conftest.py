from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import pytest

from elwood_runner.config import ManagerOptions
from elwood_runner.manager import Manager
from elwood_runner.spawner import SpawnRequest

ACTIONS_DIR = Path(__file__).parent / "actions"


@dataclass
class Outcome:
    """What the fake action does when spawned."""
    exit_code: int = 0
    outputs: str = ""
    env: str = ""
    stdout: List[str] = field(default_factory=list)
    stderr: List[str] = field(default_factory=list)


class RecordingSpawner:
    """
    Process spawner double: records every request and plays back queued
    outcomes (the default outcome once the queue is empty).
    """

    def __init__(self):
        self.requests: List[SpawnRequest] = []
        self.outcomes: List[Outcome] = []
        self.default = Outcome()

    def queue(self, **kwargs) -> Outcome:
        outcome = Outcome(**kwargs)
        self.outcomes.append(outcome)
        return outcome

    async def spawn(self, request: SpawnRequest) -> int:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default

        with open(request.env["ELWOOD_OUTPUT"], "a", encoding="utf-8") as f:
            f.write(outcome.outputs)
        with open(request.env["ELWOOD_ENV"], "a", encoding="utf-8") as f:
            f.write(outcome.env)

        for line in outcome.stdout:
            request.on_stdout(line)
        for line in outcome.stderr:
            request.on_stderr(line)

        return outcome.exit_code


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def actions_prefix():
    return ACTIONS_DIR.as_uri()


@pytest.fixture
def options(workspace, actions_prefix):
    return ManagerOptions.create(
        workspace_dir=workspace,
        execution_uid=os.getuid(),
        execution_gid=os.getgid(),
        std_actions_prefix=actions_prefix,
    )


@pytest.fixture
def spawner():
    return RecordingSpawner()


@pytest.fixture
async def manager(options, spawner):
    m = Manager(options, spawner=spawner)
    await m.prepare()
    return m


@pytest.fixture
async def sandbox_manager(options):
    m = Manager(options)
    await m.prepare()
    return m
