from __future__ import annotations

import pytest

from elwood_runner.dsl import action, build, job, sh, wf
from elwood_runner.model import ActionStep, ScriptStep


def test_sh_sets_interpreter_input():
    step = sh("print(1)", name="py", bin="python3", args=["x"])

    assert isinstance(step, ScriptStep)
    assert step.bin == "python3"
    assert step.args == ["x"]
    assert step.name == "py"


def test_action_step():
    step = action("echo", input={"content": "hi"}, permissions={"env": True})

    assert isinstance(step, ActionStep)
    assert step.input == {"content": "hi"}
    assert step.permissions.env is True


def test_wf_keeps_job_order():
    definition = wf(job("b", sh("true")), job("a", sh("true")), name="demo")

    assert definition.name == "demo"
    assert list(definition.jobs) == ["b", "a"]


def test_job_requires_steps():
    with pytest.raises(ValueError):
        job("empty")


def test_duplicate_job_names():
    with pytest.raises(ValueError):
        wf(job("a", sh("true")), job("a", sh("false")))


def test_builder():
    named = build("greet").step("echo hi", name="say").action("echo", input={"content": "x"}).build()

    assert named.name == "greet"
    assert [type(s) for s in named.definition.steps] == [ScriptStep, ActionStep]
