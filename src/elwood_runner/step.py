# step.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .errors import ActionExecutionFailure
from .expression import (
    evaluate_expression,
    is_expression_result_truthy,
    make_evaluable_expression,
)
from .model import StepDefinition, step_has_run
from .permissions import SandboxGrant, declared_permissions, merge_permissions
from .resolve import (
    action_url_args,
    resolve_action_url_for_spawner,
    resolve_action_url_from_definition,
)
from .spawner import SpawnRequest
from .state import State, StateName, Status, short_id
from .variables import parse_variable_file, replace_variable_placeholders

if TYPE_CHECKING:
    from .job import Job

logger = logging.getLogger(__name__)

OUTPUT_FILE_VAR = "ELWOOD_OUTPUT"
ENV_FILE_VAR = "ELWOOD_ENV"

SKIPPED_MESSAGE = 'Step was skipped due to "when" condition'


class Step:
    """One action invocation inside a job, plus its lifecycle state."""

    def __init__(self, job: Job, definition: StepDefinition):
        self.job = job
        self.definition = definition
        self.id = short_id("step")
        self.name = definition.name or self.id
        self.state = State()
        self.action_url: Optional[str] = None
        self._context_dir: Optional[Path] = None

    def __repr__(self) -> str:
        return f"Step(name={self.name!r}, status={self.status.value!r})"

    @property
    def context_dir(self) -> Path:
        if self._context_dir is None:
            raise RuntimeError(f"Context dir not set for step {self.name}")
        return self._context_dir

    @property
    def status(self) -> Status:
        return self.state.status

    @property
    def outputs(self) -> Dict[str, str]:
        return self.state.get(StateName.OUTPUTS, {})

    @property
    def env(self) -> Dict[str, str]:
        return self.state.get(StateName.ENV, {})

    @property
    def stdout(self) -> List[str]:
        return self.state.get(StateName.STDOUT, [])

    @property
    def stderr(self) -> List[str]:
        return self.state.get(StateName.STDERR, [])

    @property
    def exit_code(self) -> Optional[int]:
        return self.state.get(StateName.EXIT_CODE)

    # ------------------------------------------------------------------
    # Context / snapshots
    # ------------------------------------------------------------------

    def get_context(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "outputs": self.outputs,
            "env": self.env,
            "status": self.status.value,
            "result": self.state.result,
        }

    def get_combined_state(self) -> Dict[str, Any]:
        return {
            **self.state.snapshot(),
            "id": self.id,
            "name": self.name,
            "action": self.action_url,
            "outputs": self.outputs,
            "env": self.env,
            "exit_code": self.exit_code,
            "definition": self.definition.model_dump(exclude_none=True),
        }

    def evaluate_expression(self, expression: str) -> str:
        ctx = {
            "step": self.get_context(),
            "job": self.job.get_context(),
            "steps": {
                step.name: step.get_context()
                for step in self.job.steps
                if step is not self
            },
        }
        return evaluate_expression(expression, ctx)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def prepare(self) -> None:
        self._context_dir = self.job.context_dir / self.id
        self._context_dir.mkdir(parents=True)

        self.action_url = resolve_action_url_from_definition(
            self.definition,
            std_prefix=self.job.execution.manager.options.std_actions_prefix,
        )

    async def execute(self) -> None:
        if self.action_url is None:
            raise RuntimeError(f"Action URL not resolved for step {self.name}")

        with self.state.lifecycle():
            try:
                await self._execute()
            except Exception as e:
                logger.error("Step %s failed: %s", self.name, e, extra={"job": self.job.name, "step": self.name})
                self._fail(str(e))

    def _fail(self, reason: str) -> None:
        self.state.fail(reason)
        self.job.fail(f"Step {self.name} failed")

    async def _execute(self) -> None:
        when = make_evaluable_expression(self.definition.when or "true")
        if not is_expression_result_truthy(self.evaluate_expression(when)):
            self.state.skip(SKIPPED_MESSAGE)
            return

        output_file = self.context_dir / short_id("set-output")
        env_file = self.context_dir / short_id("set-env")
        output_file.write_text("", encoding="utf-8")
        env_file.write_text("", encoding="utf-8")

        env = self._build_env({
            OUTPUT_FILE_VAR: str(output_file),
            ENV_FILE_VAR: str(env_file),
        })
        grant = self._build_grant(env, output_file=output_file, env_file=env_file)
        target = resolve_action_url_for_spawner(self.action_url)

        stdout: List[str] = []
        stderr: List[str] = []
        log_extra = {"job": self.job.name, "step": self.name}

        def on_stdout(line: str) -> None:
            logger.info("  > [stdout] %s", line, extra=log_extra)
            stdout.append(line)

        def on_stderr(line: str) -> None:
            logger.warning("  > [stderr] %s", line, extra=log_extra)
            stderr.append(line)

        logger.info(" > running step: %s[%s]", self.name, self.id, extra=log_extra)
        logger.debug("  > file: %s", target, extra=log_extra)
        logger.debug("  > permissions: %s", grant.to_json(), extra=log_extra)

        code = await self.job.execution.execute_action(SpawnRequest(
            target=target,
            cwd=self.context_dir,
            env=replace_variable_placeholders(env),
            grant=grant,
            on_stdout=on_stdout,
            on_stderr=on_stderr,
        ))

        self.state.set(StateName.OUTPUTS, parse_variable_file(output_file.read_text(encoding="utf-8")))
        self.state.set(StateName.ENV, parse_variable_file(env_file.read_text(encoding="utf-8")))
        self.state.set(StateName.STDOUT, stdout)
        self.state.set(StateName.STDERR, stderr)
        self.state.set(StateName.EXIT_CODE, code)

        if code != 0:
            raise ActionExecutionFailure(
                step=self.name,
                message=f"Action failed with code {code}",
                exit_code=code,
            )

        self.state.succeed()

    # ------------------------------------------------------------------
    # Invocation environment / sandbox
    # ------------------------------------------------------------------

    def _build_env(self, init: Dict[str, str]) -> Dict[str, str]:
        env = dict(init)

        # query params of the location are passed as ARG_ variables
        for name, value in action_url_args(self.action_url or "").items():
            env[f"ARG_{name.upper()}"] = value

        for name, value in self.definition.input.items():
            env[f"INPUT_{name.upper()}"] = self.evaluate_expression(value)

        if step_has_run(self.definition):
            env["INPUT_BIN"] = self.definition.bin
            env["INPUT_SCRIPT"] = self.definition.run
            if self.definition.args is not None:
                env["INPUT_ARGS"] = json.dumps(self.definition.args)

        return env

    def _build_grant(self, env: Dict[str, str], *, output_file: Path, env_file: Path) -> SandboxGrant:
        execution = self.job.execution
        return merge_permissions(
            declared_permissions(self.definition),
            {
                "read": [
                    env_file,
                    output_file,
                    self.context_dir,
                    execution.stage_dir,
                    Path.cwd(),
                ],
                "write": [
                    env_file,
                    output_file,
                    self.context_dir,
                    execution.stage_dir,
                    execution.bin_dir,
                ],
                "env": list(env),
            },
        )
