# config.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationError

WORKSPACE_DIR_VAR = "ELWOOD_RUNNER_WORKSPACE_DIR"
EXECUTION_UID_VAR = "ELWOOD_RUNNER_EXECUTION_UID"
EXECUTION_GID_VAR = "ELWOOD_RUNNER_EXECUTION_GID"
STD_ACTIONS_PREFIX_VAR = "ELWOOD_RUNNER_STD_ACTIONS_PREFIX"

DEFAULT_STD_ACTIONS_PREFIX = "https://x.elwood.run"


class ManagerOptions(BaseModel):
    """Process-wide configuration, built once at the entry point."""
    model_config = ConfigDict(frozen=True)

    workspace_dir: Path
    execution_uid: int = Field(ge=0)
    execution_gid: int = Field(ge=0)
    std_actions_prefix: str = DEFAULT_STD_ACTIONS_PREFIX

    @field_validator("workspace_dir")
    @classmethod
    def _workspace_must_exist(cls, value: Path) -> Path:
        if not value.is_dir():
            raise ValueError(f"Workspace dir does not exist: {value}")
        return value.resolve()

    @classmethod
    def create(cls, **values) -> ManagerOptions:
        try:
            return cls(**values)
        except pydantic.ValidationError as e:
            raise ValidationError(str(e)) from e

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> ManagerOptions:
        env = os.environ if environ is None else environ

        missing = [
            name for name in (WORKSPACE_DIR_VAR, EXECUTION_UID_VAR, EXECUTION_GID_VAR)
            if not env.get(name)
        ]
        if missing:
            raise ValidationError(f"{', '.join(missing)} not set")

        return cls.create(
            workspace_dir=env[WORKSPACE_DIR_VAR],
            execution_uid=env[EXECUTION_UID_VAR],
            execution_gid=env[EXECUTION_GID_VAR],
            std_actions_prefix=env.get(STD_ACTIONS_PREFIX_VAR) or DEFAULT_STD_ACTIONS_PREFIX,
        )
