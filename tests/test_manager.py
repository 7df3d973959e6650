from __future__ import annotations

import pytest

from elwood_runner.errors import ValidationError
from elwood_runner.execution import Execution
from elwood_runner.model import Workflow
from elwood_runner.state import Status


async def test_execute_definition_registers_run(manager, workspace):
    execution = await manager.execute_definition({"j": {"steps": [{"action": "echo"}]}})

    assert manager.get_execution(execution.id) is execution
    assert execution.status is Status.SUCCESS
    assert execution.exit_code == 0
    run_dir = workspace.resolve() / execution.id
    assert sorted(p.name for p in run_dir.iterdir()) == ["bin", "context", "stage"]


async def test_execute_definition_rejects_invalid_definition(manager):
    with pytest.raises(ValidationError):
        await manager.execute_definition({"j": {"steps": [{"nope": 1}]}})
    assert manager.executions == {}


async def test_prepare_failure_skips_the_run(manager, spawner, monkeypatch):
    def broken_mkdir(scope, *parts):
        raise OSError("disk full")

    monkeypatch.setattr(manager, "mkdir", broken_mkdir)

    execution = await manager.execute_definition({"j": {"steps": [{"action": "echo"}]}})

    assert execution.status is Status.SKIPPED
    assert execution.state.result == "disk full"
    assert execution.jobs[0].status is Status.PENDING
    assert spawner.requests == []
    assert execution.exit_code == 1


async def test_step_cannot_execute_before_prepare(manager):
    execution = Execution(manager, Workflow.parse({"j": {"steps": [{"action": "echo"}]}}))

    with pytest.raises(RuntimeError):
        await execution.jobs[0].steps[0].execute()


async def test_execution_is_not_rerunnable(manager):
    from elwood_runner.errors import InvalidTransition

    execution = await manager.execute_definition({"j": {"steps": [{"action": "echo"}]}})
    with pytest.raises(InvalidTransition):
        await execution.execute()


async def test_combined_state_of_run(manager):
    execution = await manager.execute_definition({"j": {"steps": [{"name": "s", "action": "echo"}]}})
    state = execution.get_combined_state()

    assert state["id"] == execution.id
    assert state["status"] == "success"
    assert state["jobs"][0]["name"] == "j"
    assert state["jobs"][0]["steps"][0]["name"] == "s"


async def test_cleanup_empties_workspace(manager, workspace):
    await manager.execute_definition({"j": {"steps": [{"action": "echo"}]}})
    (workspace / "stray.txt").write_text("x", encoding="utf-8")

    await manager.cleanup()

    assert workspace.is_dir()
    assert list(workspace.iterdir()) == []
