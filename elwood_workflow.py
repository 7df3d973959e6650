# elwood_workflow.py
# Workflow for checking elwood-runner itself: lint, test, report
from __future__ import annotations
from elwood_runner.dsl import wf, job, sh, action

# the checkout is read from the current directory, tools need the full env
TOOLING = {"read": True, "write": True, "env": True, "run": ["python"]}


def workflow():
    return wf(
        # Test job - runs pytest and records the outcome as a step output
        job(
            "test",
            sh(
                "python -m ruff check src/ tests/ && echo LINT=clean >> \"$ELWOOD_OUTPUT\"",
                name="lint",
                permissions=TOOLING,
            ),
            sh(
                "python -m pytest -q",
                name="pytest",
                when="steps.lint.outputs.LINT == 'clean'",
                permissions=TOOLING,
            ),
        ),

        # Report job - echoes a summary through the standard echo action
        job(
            "report",
            action("echo", name="summary", input={"content": "elwood-runner checks finished"}),
        ),
        name="elwood-runner self check",
    )
