from .dsl import action, job, sh, wf, JobBuilder, build
from .config import ManagerOptions
from .errors import (
    ActionExecutionFailure,
    RunnerError,
    UnknownFolder,
    UnsupportedProtocol,
    ValidationError,
)
from .execution import Execution
from .job import Job
from .manager import Manager
from .model import Workflow, load_workflow
from .state import Status
from .step import Step

__all__ = [
    "action", "job", "sh", "wf", "JobBuilder", "build",
    "Manager", "ManagerOptions", "Execution", "Job", "Step", "Status",
    "Workflow", "load_workflow",
    "RunnerError", "ValidationError", "UnknownFolder", "UnsupportedProtocol", "ActionExecutionFailure",
]
