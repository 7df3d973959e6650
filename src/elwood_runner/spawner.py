# spawner.py
from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import re
import sys
import tempfile
import urllib.request
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

from .permissions import SandboxGrant

logger = logging.getLogger(__name__)

LineCallback = Callable[[str], None]

ANSI_ESCAPE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)|\x1b[@-Z\\-_]")

READ_CHUNK = 64 * 1024


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE.sub("", text)


@dataclass
class SpawnRequest:
    """Everything the spawner needs to launch one action process."""
    target: str                      # filesystem path or http(s) URL
    cwd: Path
    env: Dict[str, str]
    grant: SandboxGrant
    args: List[str] = field(default_factory=list)
    uid: Optional[int] = None
    gid: Optional[int] = None
    cache_dir: Optional[Path] = None  # where remote actions are downloaded to
    on_stdout: Optional[LineCallback] = None
    on_stderr: Optional[LineCallback] = None


class ProcessSpawner(Protocol):
    async def spawn(self, request: SpawnRequest) -> int: ...


def _emit(callback: Optional[LineCallback], line: bytes) -> None:
    if callback is not None:
        callback(strip_ansi(line.decode("utf-8", errors="replace")).rstrip("\r"))


async def _pump(stream: Optional[asyncio.StreamReader], callback: Optional[LineCallback]) -> None:
    """Forward a stream line by line; lines of any length, a final unterminated line included."""
    if stream is None:
        return
    buffer = bytearray()
    while True:
        chunk = await stream.read(READ_CHUNK)
        if not chunk:
            break
        start = len(buffer)
        buffer += chunk
        end = buffer.rfind(b"\n", start)
        if end < 0:
            continue
        for line in bytes(buffer[:end]).split(b"\n"):
            _emit(callback, line)
        del buffer[:end + 1]
    if buffer:
        _emit(callback, bytes(buffer))


def _is_remote(target: str) -> bool:
    return target.startswith(("http://", "https://"))


def _download(url: str, dest: Path) -> None:
    with urllib.request.urlopen(url) as response:
        data = response.read()
    tmp = dest.with_suffix(dest.suffix + ".part")
    tmp.write_bytes(data)
    tmp.replace(dest)


class SandboxSpawner:
    """
    Runs action scripts under `python -m elwood_runner.sandbox`.

    Remote actions are downloaded once into the request's cache dir. The
    child gets the parent environment overlaid with the step environment;
    the sandbox bootstrap then hides whatever the grant does not allow.
    """

    def __init__(self, *, python: str | None = None, inherit_env: bool = True):
        self._python = python or sys.executable
        self._inherit_env = inherit_env

    async def _fetch(self, url: str, cache_dir: Optional[Path]) -> str:
        cache_dir = cache_dir or Path(tempfile.gettempdir()) / "elwood-actions"
        cache_dir.mkdir(parents=True, exist_ok=True)

        dest = cache_dir / f"{hashlib.sha256(url.encode('utf-8')).hexdigest()[:16]}.py"
        if not dest.exists():
            logger.info("Downloading action %s", url)
            await asyncio.to_thread(_download, url, dest)
        return str(dest)

    def _build_env(self, request: SpawnRequest) -> Dict[str, str]:
        env = dict(os.environ) if self._inherit_env else {}
        env.update(request.env)
        env["PYTHONUNBUFFERED"] = "1"
        return env

    async def spawn(self, request: SpawnRequest) -> int:
        script = request.target
        if _is_remote(script):
            script = await self._fetch(script, request.cache_dir)

        cmd = [
            self._python, "-B", "-m", "elwood_runner.sandbox",
            request.grant.to_json(), script, *request.args,
        ]

        # only switch identity when it differs, unprivileged runners can't setuid
        kwargs = {}
        if request.uid is not None and request.uid != os.getuid():
            kwargs["user"] = request.uid
        if request.gid is not None and request.gid != os.getgid():
            kwargs["group"] = request.gid

        logger.debug("Spawning %s in %s", script, request.cwd)

        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=self._build_env(request),
            cwd=str(request.cwd),
            **kwargs,
        )

        try:
            await asyncio.gather(
                _pump(process.stdout, request.on_stdout),
                _pump(process.stderr, request.on_stderr),
            )
        except BaseException:
            # nobody drains the pipes any more, a still-running child would block on them
            if process.returncode is None:
                process.kill()
            await process.wait()
            raise
        return await process.wait()
