# resolve.py
from __future__ import annotations

import posixpath
from typing import Dict
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit
from urllib.request import url2pathname

from .errors import UnsupportedProtocol
from .model import StepDefinition, step_has_run

SCRIPT_EXT = ".py"
RUN_ACTION = "run"


def resolve_action_url_from_definition(definition: StepDefinition, *, std_prefix: str) -> str:
    """Inline-script steps resolve as the built-in "run" action."""
    if step_has_run(definition):
        return resolve_action_url(RUN_ACTION, std_prefix=std_prefix)
    return resolve_action_url(definition.action, std_prefix=std_prefix)


def resolve_action_url(action: str, *, std_prefix: str) -> str:
    """
    Map an action identifier to a location.

      bin://python      -> <run action>?bin=python
      https://host/a.py -> unchanged (any scheme other than bin)
      foo/bar           -> <std_prefix>/foo/bar.py
    """
    # anything with a scheme separator is treated as a location already
    if "://" in action:
        parts = urlsplit(action)

        if parts.scheme == "bin":
            run = urlsplit(resolve_action_url(RUN_ACTION, std_prefix=std_prefix))
            return urlunsplit(run._replace(query=urlencode({"bin": parts.netloc})))

        return action

    base = posixpath.basename(action)
    ext = "" if action.endswith(SCRIPT_EXT) else SCRIPT_EXT
    path = posixpath.join(posixpath.dirname(action), f"{base}{ext}")

    return f"{std_prefix.rstrip('/')}/{path}"


def resolve_action_url_for_spawner(location: str) -> str:
    """Convert a location into the form the process spawner accepts."""
    parts = urlsplit(location)

    if parts.scheme == "file":
        return url2pathname(parts.path)
    if parts.scheme in ("http", "https"):
        return location

    raise UnsupportedProtocol(f"{parts.scheme}:")


def action_url_args(location: str) -> Dict[str, str]:
    """Query parameters of a resolved location (later duplicates win)."""
    return dict(parse_qsl(urlsplit(location).query, keep_blank_values=True))
