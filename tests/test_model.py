from __future__ import annotations

import json

import pytest

from elwood_runner.errors import ValidationError
from elwood_runner.model import ActionStep, ScriptStep, Workflow, load_workflow, step_has_run

YAML_WORKFLOW = """\
name: demo
jobs:
  build:
    steps:
      - name: A
        run: echo hi
        args: [one, two]
      - name: B
        action: echo
        when: steps.A.status == 'success'
        input:
          content: hello
          retries: 3
          verbose: true
        permissions:
          read: true
          env: [HOME]
"""


def test_parse_bare_job_mapping():
    wf = Workflow.parse({"build": {"steps": [{"run": "make"}]}})

    assert list(wf.jobs) == ["build"]
    assert isinstance(wf.jobs["build"].steps[0], ScriptStep)


def test_step_kind_is_discriminated_by_field():
    wf = Workflow.parse({"jobs": {"j": {"steps": [{"run": "make"}, {"action": "echo"}]}}})
    run, act = wf.jobs["j"].steps

    assert step_has_run(run)
    assert not step_has_run(act)
    assert isinstance(act, ActionStep)


def test_job_order_is_preserved():
    wf = Workflow.parse({"z": {"steps": [{"run": "a"}]}, "a": {"steps": [{"run": "b"}]}})
    assert list(wf.jobs) == ["z", "a"]


def test_input_values_are_stringified():
    step = ActionStep(action="echo", input={"n": 3, "flag": True, "s": "x"})
    assert step.input == {"n": "3", "flag": "true", "s": "x"}


def test_script_bin_defaults_to_bash():
    assert ScriptStep(run="ls").bin == "bash"
    assert ScriptStep(run="print(1)", input={"bin": "python3"}).bin == "python3"


@pytest.mark.parametrize(
    "data",
    [
        {"jobs": {"j": {"steps": [{"name": "x"}]}}},
        {"jobs": {"j": {"steps": [{"action": "echo", "permissions": {"net": True}}]}}},
        {"jobs": {"j": {}}},
        {"jobs": {"j": {"steps": [{"run": "make", "action": "echo"}]}}},
        {"jobs": {"j": {"steps": [{"action": "echo", "permissions": {"read": "yes"}}]}}},
        {"jobs": {"j": {"steps": [{"action": "echo", "permissions": {"run": [1]}}]}}},
        "not a mapping",
    ],
)
def test_invalid_definitions(data):
    with pytest.raises(ValidationError):
        Workflow.parse(data)


def test_load_yaml(tmp_path):
    path = tmp_path / "elwood.yml"
    path.write_text(YAML_WORKFLOW, encoding="utf-8")

    wf = load_workflow(path)

    assert wf.name == "demo"
    a, b = wf.jobs["build"].steps
    assert a.args == ["one", "two"]
    assert b.input == {"content": "hello", "retries": "3", "verbose": "true"}
    assert b.permissions.read is True
    assert b.permissions.env == ["HOME"]


def test_load_json(tmp_path):
    path = tmp_path / "wf.json"
    path.write_text(json.dumps({"j": {"steps": [{"action": "echo"}]}}), encoding="utf-8")

    assert list(load_workflow(path).jobs) == ["j"]


def test_load_python(tmp_path):
    path = tmp_path / "ci_workflow.py"
    path.write_text(
        "from elwood_runner.dsl import wf, job, sh\n"
        "def workflow():\n"
        "    return wf(job('build', sh('make')))\n",
        encoding="utf-8",
    )

    assert list(load_workflow(path).jobs) == ["build"]


def test_load_python_requires_entry_point(tmp_path):
    path = tmp_path / "empty_workflow.py"
    path.write_text("X = 1\n", encoding="utf-8")

    with pytest.raises(TypeError):
        load_workflow(path)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_workflow(tmp_path / "nope.yml")
