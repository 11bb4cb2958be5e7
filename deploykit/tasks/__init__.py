"""Task contract, parameter metadata and the task registry."""

from .base import Task, TaskBase
from .decorators import task
from .parameters import (
    BASE_PARAMETERS,
    UNSET,
    ParameterDescription,
    ParameterSource,
    ParameterSourceType,
)
from .registry import TaskFactory, TaskRegistration, TaskRegistry, task_registry

__all__ = [
    "BASE_PARAMETERS",
    "UNSET",
    "ParameterDescription",
    "ParameterSource",
    "ParameterSourceType",
    "Task",
    "TaskBase",
    "TaskFactory",
    "TaskRegistration",
    "TaskRegistry",
    "task",
    "task_registry",
]
