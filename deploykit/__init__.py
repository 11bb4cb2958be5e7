"""deploykit: a task-sequence workflow engine for unattended OS deployment."""

from deploykit.core.cancellation import CancellationToken
from deploykit.state import Phase, State, StateKey, StateOptions, WellKnownStates
from deploykit.tasks import ParameterDescription, Task, TaskBase, task, task_registry

# Registers the built-in tasks.
from deploykit.tasks import builtin  # noqa: F401
from deploykit.workflow import (
    SelfConfiguringTask,
    SequenceResult,
    TaskSequence,
    TaskSequenceBuilder,
    TaskSequenceDescription,
    TaskSequenceFactory,
    TaskSequenceStore,
)

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "ParameterDescription",
    "Phase",
    "SelfConfiguringTask",
    "SequenceResult",
    "State",
    "StateKey",
    "StateOptions",
    "Task",
    "TaskBase",
    "TaskSequence",
    "TaskSequenceBuilder",
    "TaskSequenceDescription",
    "TaskSequenceFactory",
    "TaskSequenceStore",
    "WellKnownStates",
    "task",
    "task_registry",
]
