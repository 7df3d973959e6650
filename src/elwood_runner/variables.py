# variables.py
from __future__ import annotations

import io
import re
from typing import Dict, Mapping

from dotenv import dotenv_values

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def parse_variable_file(text: str) -> Dict[str, str]:
    """
    Parse the NAME=VALUE lines an action appended to an exchange file.

    Later lines win, blank lines and comments are ignored, values are not
    interpolated. A bare NAME line yields an empty value.
    """
    values = dotenv_values(stream=io.StringIO(text), interpolate=False)
    return {k: (v if v is not None else "") for k, v in values.items()}


def replace_variable_placeholders(variables: Mapping[str, str]) -> Dict[str, str]:
    """Substitute `${NAME}` references to other keys of the same mapping."""

    def _sub(match: re.Match) -> str:
        name = match.group(1)
        return variables[name] if name in variables else match.group(0)

    return {k: _PLACEHOLDER.sub(_sub, v) for k, v in variables.items()}
