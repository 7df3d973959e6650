# dsl.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from .model import ActionStep, JobDefinition, Permissions, ScriptStep, StepDefinition, Workflow

PermissionsArg = Union[Permissions, Dict[str, object], None]


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def sh(
    script: str,
    *,
    name: str | None = None,
    bin: str | None = None,
    args: Optional[List[str]] = None,
    when: str | None = None,
    input: Optional[Dict[str, str]] = None,
    permissions: PermissionsArg = None,
) -> ScriptStep:
    """Create an inline-script step (runs through `bin`, default bash)."""
    step_input = dict(input or {})
    if bin is not None:
        step_input["bin"] = bin

    return ScriptStep(
        name=name,
        run=script,
        args=args,
        when=when,
        input=step_input,
        permissions=permissions or Permissions(),
    )


def action(
    identifier: str,
    *,
    name: str | None = None,
    when: str | None = None,
    input: Optional[Dict[str, str]] = None,
    permissions: PermissionsArg = None,
) -> ActionStep:
    """Create a step that invokes an action (`echo`, `bin://python`, `https://...`)."""
    return ActionStep(
        name=name,
        action=identifier,
        when=when,
        input=dict(input or {}),
        permissions=permissions or Permissions(),
    )


# ---------------------------------------------------------------------
# Functional job helper
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class NamedJob:
    name: str
    definition: JobDefinition


def job(name: str, *steps: StepDefinition, steps_list: Optional[List[StepDefinition]] = None) -> NamedJob:
    steps_final: List[StepDefinition] = []
    if steps_list:
        steps_final.extend(steps_list)
    steps_final.extend(steps)

    if not steps_final:
        raise ValueError(f"job({name!r}) must have at least one step")

    return NamedJob(name=name, definition=JobDefinition(steps=steps_final))


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class JobBuilder:
    def __init__(self, name: str):
        self.name = name
        self._steps: list[StepDefinition] = []

    def step(self, script: str, **kwargs) -> JobBuilder:
        self._steps.append(sh(script, **kwargs))
        return self

    def action(self, identifier: str, **kwargs) -> JobBuilder:
        self._steps.append(action(identifier, **kwargs))
        return self

    def build(self) -> NamedJob:
        return job(self.name, steps_list=self._steps)


def build(name: str) -> JobBuilder:
    """Convenience: build('test').step('make test').build()"""
    return JobBuilder(name)


# ---------------------------------------------------------------------
# Workflow helper (single-file story)
# ---------------------------------------------------------------------

def wf(*jobs: NamedJob, name: str | None = None) -> Workflow:
    """
    Workflow definition helper. Use this name so you can define your own
    def workflow(): return wf(job(...), job(...)).

        from elwood_runner.dsl import wf, job, sh

        def workflow():
            return wf(
                job("build", sh("make")),
                job("greet", action("echo", input={"content": "hi"})),
            )
    """
    by_name: Dict[str, JobDefinition] = {}
    for j in jobs:
        if j.name in by_name:
            raise ValueError(f"Duplicate job name: {j.name}")
        by_name[j.name] = j.definition

    return Workflow(name=name, jobs=by_name)
