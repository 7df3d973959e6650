from __future__ import annotations

import json
from pathlib import Path

import pytest

from elwood_runner.model import ActionStep, Permissions, ScriptStep
from elwood_runner.permissions import (
    SandboxGrant,
    declared_permissions,
    merge_category,
    merge_permissions,
)


@pytest.mark.parametrize(
    "declared, required, expected",
    [
        (False, ["/a"], False),
        (["/a"], False, False),
        (True, ["/a"], True),
        (None, True, True),
        (True, False, False),
        (None, None, ()),
        ([], [], ()),
        (["/a", "/b"], ["/b", "/c"], ("/a", "/b", "/c")),
        (["/a", None], None, ("/a",)),
    ],
)
def test_merge_category(declared, required, expected):
    assert merge_category(declared, required) == expected


def test_merge_category_accepts_paths():
    assert merge_category(None, [Path("/tmp/x")]) == ("/tmp/x",)


def test_merge_permissions_from_model():
    grant = merge_permissions(
        Permissions(read=["/data"], env=True),
        {"read": ["/ctx"], "write": ["/ctx"], "env": ["INPUT_A"]},
    )

    assert grant == SandboxGrant(read=("/data", "/ctx"), write=("/ctx",), env=True, run=())


def test_merge_permissions_without_declaration():
    grant = merge_permissions(None, {"write": ["/ctx"]})
    assert grant.read == ()
    assert grant.write == ("/ctx",)


def test_grant_json_round_trip():
    grant = SandboxGrant(read=("/a",), write=False, env=True, run=("bash",))
    data = json.loads(grant.to_json())

    assert data == {"read": ["/a"], "write": False, "env": True, "run": ["bash"]}
    assert SandboxGrant.from_dict(data) == grant


def test_script_step_always_may_run_its_interpreter():
    step = ScriptStep(run="echo hi", permissions={"run": ["git"]})
    assert declared_permissions(step)["run"] == ["bash", "git"]


def test_script_step_interpreter_survives_run_false():
    step = ScriptStep(run="print(1)", input={"bin": "python3"}, permissions={"run": False})
    assert declared_permissions(step)["run"] == ["python3"]


def test_script_step_keeps_unrestricted_run():
    step = ScriptStep(run="echo hi", permissions={"run": True})
    assert declared_permissions(step)["run"] is True


def test_action_step_declarations_pass_through():
    step = ActionStep(action="echo", permissions={"read": True})
    wishes = declared_permissions(step)

    assert wishes["read"] is True
    assert wishes["run"] is None
