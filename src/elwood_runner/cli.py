# cli.py
from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from elwood_runner.config import WORKSPACE_DIR_VAR, EXECUTION_GID_VAR, EXECUTION_UID_VAR
from elwood_runner.errors import ValidationError
from elwood_runner.execution import Execution
from elwood_runner.manager import Manager
from elwood_runner.model import Workflow, load_workflow
from elwood_runner.state import Status
from elwood_runner.ui.console import Console, get_console, set_console

DEFAULT_WORKFLOW_FILES = ("elwood_workflow.py", "elwood.yml", "elwood.yaml")

# startup validation failures (configuration, workflow definition)
EXIT_INVALID = 2


def find_workflow_files() -> list[Path]:
    """
    Find all workflow files in the current directory.

    Returns:
        List of Path objects for workflow files
    """
    current_dir = Path(".")
    workflow_files = {current_dir / name for name in DEFAULT_WORKFLOW_FILES if (current_dir / name).exists()}
    workflow_files.update(current_dir.glob("*_workflow.py"))
    return sorted(workflow_files)


def discover_workflow(workflow_arg: str | None) -> Path:
    """
    Discover workflow file from argument or default.

    Args:
        workflow_arg: Optional workflow argument from CLI

    Returns:
        Path to workflow file

    Raises:
        SystemExit: If workflow cannot be found or multiple workflows exist
    """
    console = get_console()

    if workflow_arg:
        workflow_path = Path(workflow_arg)
        if not workflow_path.exists():
            console.print_error(
                "Workflow file not found",
                f"Could not find workflow file: {workflow_arg}",
                suggestion="Create a workflow file or specify a different path:\n  elwood-runner run my_workflow.yml",
            )
            sys.exit(EXIT_INVALID)
        return workflow_path

    workflow_files = find_workflow_files()

    if len(workflow_files) == 0:
        console.print_error(
            "No workflow file found",
            "Could not find any workflow files.",
            details=["Looked for:", *(f"  {name}" for name in DEFAULT_WORKFLOW_FILES), "  *_workflow.py"],
            suggestion="Create a workflow file or specify one explicitly:\n  elwood-runner run my_workflow.yml",
        )
        sys.exit(EXIT_INVALID)

    if len(workflow_files) > 1:
        file_list = "\n".join(f"  {f}" for f in workflow_files)
        console.print_error(
            "Multiple workflow files found",
            "Found multiple workflow files. Please specify which one to use:",
            details=[file_list],
            suggestion="Specify a workflow explicitly:\n  elwood-runner run elwood.yml",
        )
        sys.exit(EXIT_INVALID)

    return workflow_files[0]


def _manager_from_env() -> Manager:
    console = get_console()
    try:
        return Manager.from_env()
    except ValidationError as e:
        console.print_error(
            "Invalid configuration",
            str(e),
            details=[f"{WORKSPACE_DIR_VAR}, {EXECUTION_UID_VAR} and {EXECUTION_GID_VAR} are required"],
        )
        sys.exit(EXIT_INVALID)


async def _execute(manager: Manager, definition: Workflow, cleanup: bool) -> Execution:
    await manager.prepare()
    try:
        return await manager.execute_definition(definition)
    finally:
        if cleanup:
            await manager.cleanup()


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """elwood-runner: sandboxed workflow execution runtime."""
    console = Console(debug=debug)
    set_console(console)
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.argument("workflow", required=False)
@click.option("--cleanup/--no-cleanup", default=False, help="Delete everything under the workspace afterwards")
@click.pass_context
def run(ctx, workflow, cleanup):
    """Run a workflow definition (.yml, .yaml, .json or .py)."""
    console = get_console()

    workflow_path = discover_workflow(workflow)
    manager = _manager_from_env()

    try:
        definition = load_workflow(workflow_path)
    except Exception as e:
        console.print_error(
            "Failed to load workflow",
            f"Could not load workflow from {workflow_path}",
            details=[str(e)],
        )
        sys.exit(EXIT_INVALID)

    console.print_run_started(
        workflow=workflow_path.name,
        workspace=str(manager.workspace_dir),
        job_count=len(definition.jobs),
    )

    try:
        execution = asyncio.run(_execute(manager, definition, cleanup))
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)

    console.print_results(execution)
    sys.exit(execution.exit_code)


@cli.command(name="action")
@click.argument("identifier")
@click.option("--input", "-i", "inputs", multiple=True, help="NAME=VALUE input (repeatable)")
@click.option("--allow-read", multiple=True, help="Readable path (repeatable)")
@click.option("--allow-write", multiple=True, help="Writable path (repeatable)")
@click.option("--allow-env", multiple=True, help="Visible environment variable (repeatable)")
@click.option("--allow-run", multiple=True, help="Allowed spawn target (repeatable)")
@click.pass_context
def action(ctx, identifier, inputs, allow_read, allow_write, allow_env, allow_run):
    """Run a single action; exits with the action's own exit code."""
    console = get_console()

    step_input = {}
    for item in inputs:
        name, sep, value = item.partition("=")
        if not sep or not name:
            console.print_error("Invalid input", f"Expected NAME=VALUE, got: {item}")
            sys.exit(EXIT_INVALID)
        step_input[name] = value

    permissions = {
        key: list(values)
        for key, values in (
            ("read", allow_read),
            ("write", allow_write),
            ("env", allow_env),
            ("run", allow_run),
        )
        if values
    }

    manager = _manager_from_env()
    try:
        definition = Workflow.parse({
            "action": {
                "steps": [{
                    "name": "action",
                    "action": identifier,
                    "input": step_input,
                    "permissions": permissions,
                }],
            },
        })
    except ValidationError as e:
        console.print_error("Invalid action", str(e))
        sys.exit(EXIT_INVALID)

    execution = asyncio.run(_execute(manager, definition, cleanup=False))

    step = execution.jobs[0].steps[0]
    if step.status is Status.FAILED and step.exit_code is None:
        console.print_error("Action failed", step.state.result or "unknown error")
    console.print_debug(f"{execution.id}: {execution.status.value}")

    sys.exit(execution.exit_code)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
