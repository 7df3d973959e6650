# expression.py
from __future__ import annotations

from typing import Any, Mapping

from jinja2 import ChainableUndefined
from jinja2.sandbox import ImmutableSandboxedEnvironment

EXPRESSION_START = "${{"
EXPRESSION_END = "}}"

FALSY_RESULTS = {"", "false", "0", "none", "null", "undefined"}

_env = ImmutableSandboxedEnvironment(
    variable_start_string=EXPRESSION_START,
    variable_end_string=EXPRESSION_END,
    # block/comment syntax is not part of the expression language
    block_start_string="\x00{%",
    block_end_string="%}\x00",
    comment_start_string="\x00{#",
    comment_end_string="#}\x00",
    keep_trailing_newline=True,
    autoescape=False,
    undefined=ChainableUndefined,
)
_env.globals["null"] = None


def make_evaluable_expression(expression: str) -> str:
    """Wrap a bare expression (`a == 'b'`) into a template (`${{ a == 'b' }}`)."""
    if EXPRESSION_START in expression:
        return expression
    return f"{EXPRESSION_START} {expression} {EXPRESSION_END}"


def evaluate_expression(template: str, context: Mapping[str, Any]) -> str:
    """
    Render a template against a context.

    Strings without `${{ ... }}` come back unchanged; lookups of missing
    names or keys render as an empty string.
    """
    if EXPRESSION_START not in template:
        return template
    return _env.from_string(template).render(**context)


def is_expression_result_truthy(result: str) -> bool:
    return result.strip().lower() not in FALSY_RESULTS
