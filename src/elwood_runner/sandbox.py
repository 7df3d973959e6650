# sandbox.py
"""
Guest bootstrap for action scripts.

    python -B -m elwood_runner.sandbox GRANT_JSON SCRIPT [ARGS...]

Hides every environment variable outside the `env` grant, installs an audit
hook (PEP 578) enforcing the `read` / `write` / `run` grant, then runs SCRIPT
as `__main__`. A denied operation raises PermissionError inside the guest.

The interpreter's own install locations, the entries of sys.path and the
script itself are always readable so the guest can import the standard
library.
"""
from __future__ import annotations

import json
import os
import runpy
import sys
from typing import Any, Iterable, Tuple, Union

from .permissions import SandboxGrant

WRITE_FLAGS = os.O_WRONLY | os.O_RDWR | os.O_APPEND | os.O_CREAT | os.O_TRUNC

# event -> indexes of path arguments
READ_EVENTS = {
    "os.listdir": (0,),
    "os.scandir": (0,),
}
WRITE_EVENTS = {
    "os.mkdir": (0,),
    "os.remove": (0,),
    "os.rmdir": (0,),
    "os.rename": (0, 1),
    "os.truncate": (0,),
    "os.chmod": (0,),
    "os.chown": (0,),
    "os.link": (0, 1),
    "os.symlink": (1,),
    "os.utime": (0,),
    "shutil.rmtree": (0,),
}
SPAWN_EVENTS = {
    "subprocess.Popen": 0,
    "os.exec": 0,
    "os.posix_spawn": 0,
    "os.spawn": 1,
}

Rules = Union[bool, Tuple[str, ...]]


def _real(path: Any) -> str:
    return os.path.realpath(os.fsdecode(path))


def _path_rules(value: Any) -> Rules:
    if isinstance(value, bool):
        return value
    return tuple(_real(p) for p in value or ())


def _under(path: str, roots: Iterable[str]) -> bool:
    for root in roots:
        if path == root or path.startswith(root.rstrip(os.sep) + os.sep):
            return True
    return False


class Sandbox:
    def __init__(self, grant: SandboxGrant, script: str):
        self.read: Rules = _path_rules(grant.read)
        self.write: Rules = _path_rules(grant.write)
        self.env = grant.env
        self.run = grant.run

        implicit = [sys.prefix, sys.base_prefix, sys.exec_prefix, sys.base_exec_prefix, script]
        implicit.extend(p for p in sys.path if p)
        self.implicit_read = tuple(_real(p) for p in implicit)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    @staticmethod
    def _allowed(rules: Rules, path: str) -> bool:
        if isinstance(rules, bool):
            return rules
        return _under(path, rules)

    def check_read(self, raw: Any) -> None:
        path = _real(raw)
        if _under(path, self.implicit_read) or self._allowed(self.read, path):
            return
        raise PermissionError(f"Requires read access to \"{path}\"")

    def check_write(self, raw: Any) -> None:
        path = _real(raw)
        if self._allowed(self.write, path):
            return
        raise PermissionError(f"Requires write access to \"{path}\"")

    def check_run(self, raw: Any) -> None:
        target = os.fsdecode(raw)
        if self.run is True:
            return
        if self.run and (target in self.run or os.path.basename(target) in self.run):
            return
        raise PermissionError(f"Requires run access to \"{target}\"")

    # ------------------------------------------------------------------
    # Hook
    # ------------------------------------------------------------------

    def _on_open(self, path: Any, mode: Any, flags: Any) -> None:
        if isinstance(mode, str):
            writing = any(c in mode for c in "wax+")
            reading = "r" in mode or "+" in mode
        else:
            flags = flags or 0
            writing = bool(flags & WRITE_FLAGS)
            reading = not flags & os.O_WRONLY

        if reading:
            self.check_read(path)
        if writing:
            self.check_write(path)

    def audit(self, event: str, args: tuple) -> None:
        if event == "open":
            path, mode, flags = (tuple(args) + (None, None, None))[:3]
            # file descriptors were already checked when they were opened
            if path is None or isinstance(path, int):
                return
            self._on_open(path, mode, flags)
        elif event in READ_EVENTS:
            for i in READ_EVENTS[event]:
                if isinstance(args[i], (str, bytes, os.PathLike)):
                    self.check_read(args[i])
        elif event in WRITE_EVENTS:
            for i in WRITE_EVENTS[event]:
                if isinstance(args[i], (str, bytes, os.PathLike)):
                    self.check_write(args[i])
        elif event in SPAWN_EVENTS:
            target = args[SPAWN_EVENTS[event]]
            if event == "subprocess.Popen" and target is None:
                argv = args[1]
                target = argv if isinstance(argv, (str, bytes)) else list(argv)[0]
            self.check_run(target)
        elif event == "os.system":
            self.check_run("sh")

    def hide_environment(self) -> None:
        if self.env is True:
            return
        allowed = set(self.env or ())
        for name in list(os.environ):
            if name not in allowed:
                del os.environ[name]


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if len(argv) < 2:
        raise SystemExit("usage: python -m elwood_runner.sandbox GRANT_JSON SCRIPT [ARGS...]")

    grant = SandboxGrant.from_dict(json.loads(argv[0]))
    script = argv[1]

    sys.dont_write_bytecode = True
    sandbox = Sandbox(grant, script)
    sandbox.hide_environment()
    sys.addaudithook(sandbox.audit)

    sys.argv = [script, *argv[2:]]
    runpy.run_path(script, run_name="__main__")


if __name__ == "__main__":
    main()
