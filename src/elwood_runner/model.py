# model.py
from __future__ import annotations

import runpy
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pydantic
import yaml
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator, model_validator

from .errors import ValidationError

PermissionValue = Union[StrictBool, List[StrictStr], None]


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Permissions(BaseModel):
    """
    Declared sandbox wishes of a step.

    Every category is `true` (unrestricted), `false` (none), a list
    (closed allow-list) or unset (deny).
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    read: PermissionValue = None
    write: PermissionValue = None
    env: PermissionValue = None
    run: PermissionValue = None


class _StepBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Optional[str] = None
    when: Optional[str] = None
    input: Dict[str, str] = Field(default_factory=dict)
    permissions: Permissions = Field(default_factory=Permissions)

    @field_validator("input", mode="before")
    @classmethod
    def _stringify_input(cls, value: Any) -> Any:
        # YAML hands us ints/bools for unquoted scalars
        if isinstance(value, dict):
            return {k: _as_text(v) for k, v in value.items()}
        return value


class ActionStep(_StepBase):
    """A step that invokes an action by identifier."""
    action: str


class ScriptStep(_StepBase):
    """A step that runs a literal script through an interpreter."""
    run: str
    args: Optional[List[str]] = None

    @property
    def bin(self) -> str:
        return self.input.get("bin") or "bash"


StepDefinition = Union[ScriptStep, ActionStep]


def step_has_run(definition: StepDefinition) -> bool:
    return isinstance(definition, ScriptStep)


class JobDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    steps: List[StepDefinition]


class Workflow(BaseModel):
    """
    Ordered mapping of job name -> job definition.

    Accepts either `{"jobs": {...}}` or the bare job mapping.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Optional[str] = None
    jobs: Dict[str, JobDefinition]

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_mapping(cls, data: Any) -> Any:
        if isinstance(data, dict) and "jobs" not in data:
            return {"jobs": data}
        return data

    @classmethod
    def parse(cls, data: Any) -> Workflow:
        if isinstance(data, Workflow):
            return data
        try:
            return cls.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid workflow definition:\n{e}") from e


# ----------------------------------------------------------------------
# Workflow loading (local file)
# ----------------------------------------------------------------------

def load_workflow(path: str | Path) -> Workflow:
    """
    Load a workflow definition from a file.

    Supported:
      - .yml / .yaml / .json: the definition mapping itself
      - .py: must define either workflow() -> definition or WORKFLOW = definition

    Returns:
      Workflow
    """
    wf_path = Path(path).expanduser().resolve()
    if not wf_path.exists():
        raise FileNotFoundError(f"Workflow file not found: {wf_path}")

    if wf_path.suffix in (".yml", ".yaml", ".json"):
        with wf_path.open("r", encoding="utf-8") as f:
            return Workflow.parse(yaml.safe_load(f))

    if wf_path.suffix != ".py":
        raise ValueError(f"Unsupported workflow file: {wf_path.name}")

    module_name = f"elwood_workflow_{wf_path.stem}"
    globals_dict = runpy.run_path(str(wf_path), run_name=module_name)

    if "workflow" in globals_dict and callable(globals_dict["workflow"]):
        definition = globals_dict["workflow"]()
    elif "WORKFLOW" in globals_dict:
        definition = globals_dict["WORKFLOW"]
    else:
        raise TypeError(
            "Workflow file must define workflow() -> definition or WORKFLOW = definition."
        )

    return Workflow.parse(definition)
