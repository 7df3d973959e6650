from __future__ import annotations

from elwood_runner.state import Status


async def test_steps_after_failure_are_skipped(manager, spawner):
    spawner.queue(exit_code=1)

    execution = await manager.execute_definition({
        "build": {"steps": [
            {"name": "one", "action": "echo"},
            {"name": "two", "action": "echo"},
            {"name": "three", "action": "echo"},
        ]},
    })
    job = execution.get_job("build")

    assert [s.status for s in job.steps] == [Status.FAILED, Status.SKIPPED, Status.SKIPPED]
    assert job.get_step("two").state.result == "Skipped because step one failed"
    assert len(spawner.requests) == 1


async def test_later_jobs_still_run(manager, spawner):
    spawner.queue(exit_code=2)

    execution = await manager.execute_definition({
        "first": {"steps": [{"action": "echo"}]},
        "second": {"steps": [{"action": "echo"}]},
    })

    assert execution.get_job("first").status is Status.FAILED
    assert execution.get_job("second").status is Status.SUCCESS
    assert execution.status is Status.FAILED
    assert execution.state.result == "Jobs failed: first"
    assert execution.exit_code == 2


async def test_job_context_merges_step_outputs(manager, spawner):
    spawner.queue(outputs="A=1\nB=1\n")
    spawner.queue(outputs="B=2\n")

    execution = await manager.execute_definition({
        "j": {"steps": [{"action": "echo"}, {"action": "echo"}]},
    })
    ctx = execution.get_job("j").get_context()

    assert ctx["outputs"] == {"A": "1", "B": "2"}
    assert ctx["status"] == "success"


async def test_step_sees_job_context(manager, spawner):
    spawner.queue(outputs="VERSION=1.2\n")

    await manager.execute_definition({
        "release": {"steps": [
            {"action": "echo"},
            {"action": "echo", "input": {"content": "${{ job.name }} ${{ job.outputs.VERSION }}"}},
        ]},
    })

    assert spawner.requests[1].env["INPUT_CONTENT"] == "release 1.2"


async def test_job_fail_is_ignored_once_finished(manager):
    execution = await manager.execute_definition({"j": {"steps": [{"action": "echo"}]}})
    job = execution.jobs[0]

    job.fail("late")

    assert job.status is Status.SUCCESS
    assert job.state.result is None


async def test_contexts_are_nested(manager):
    execution = await manager.execute_definition({"j": {"steps": [{"action": "echo"}]}})
    job = execution.jobs[0]
    step = job.steps[0]

    assert job.context_dir.parent == execution.context_dir
    assert step.context_dir.parent == job.context_dir
