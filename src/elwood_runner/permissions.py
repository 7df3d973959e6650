# permissions.py
from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from .model import Permissions, StepDefinition, step_has_run

# ---------------------------------------------------------------------
# Sandbox grant
# ---------------------------------------------------------------------
# Per category:
#   True          -> unrestricted
#   False         -> closed
#   tuple of str  -> closed allow-list (empty tuple == deny)
# ---------------------------------------------------------------------

CATEGORIES = ("read", "write", "env", "run")

Category = Union[bool, Tuple[str, ...]]
Wish = Union[bool, Iterable[Any], None]


@dataclass(frozen=True)
class SandboxGrant:
    read: Category = ()
    write: Category = ()
    env: Category = ()
    run: Category = ()

    def to_dict(self) -> Dict[str, Any]:
        return {k: (v if isinstance(v, bool) else list(v)) for k, v in asdict(self).items()}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SandboxGrant:
        values = {}
        for name in CATEGORIES:
            v = data.get(name, ())
            values[name] = v if isinstance(v, bool) else tuple(v)
        return cls(**values)


def _as_item(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    return str(value)


def merge_category(declared: Wish, required: Wish) -> Category:
    """
    Union of two wishes for one category.

    False on either side closes the category, True on either side opens it,
    otherwise both lists are unioned (first occurrence order, None dropped).
    """
    if declared is False or required is False:
        return False
    if declared is True or required is True:
        return True

    merged: list[str] = []
    for raw in [*(declared or []), *(required or [])]:
        item = _as_item(raw)
        if item is None or item in merged:
            continue
        merged.append(item)
    return tuple(merged)


def merge_permissions(
    declared: Union[Permissions, Mapping[str, Wish], None],
    required: Mapping[str, Wish],
) -> SandboxGrant:
    if declared is None:
        declared = {}
    elif isinstance(declared, Permissions):
        declared = declared.model_dump()

    return SandboxGrant(**{
        name: merge_category(declared.get(name), required.get(name))
        for name in CATEGORIES
    })


def declared_permissions(definition: StepDefinition) -> Dict[str, Wish]:
    """
    The step's declared wishes plus grants implied by its configuration.

    An inline-script step's interpreter is always an allowed spawn target;
    it is kept even when `run` is declared false, since the script could
    not execute otherwise.
    """
    wishes: Dict[str, Wish] = definition.permissions.model_dump()

    if step_has_run(definition):
        declared_run = wishes.get("run")
        if declared_run is not True:
            wishes["run"] = [definition.bin, *(declared_run if isinstance(declared_run, list) else [])]

    return wishes
