"""Decorator registering task types."""

import inspect
import logging
from collections.abc import Callable, Iterable
from typing import TypeVar

from deploykit.state import Phase

from .base import TaskBase
from .parameters import ParameterDescription
from .registry import TaskFactory, TaskRegistry, task_registry

C = TypeVar("C", bound=type)

logger = logging.getLogger(__name__)


def task(
    task_id: str,
    *,
    phases: Iterable[Phase | str] = (),
    parameters: Iterable[ParameterDescription] = (),
    description: str = "",
    name: str | None = None,
    factory: TaskFactory | None = None,
    registry: TaskRegistry | None = None,
) -> Callable[[C], C]:
    """Register a TaskBase subclass under ``task_id``.

    Args:
        task_id: Stable identifier used in sequence files
        phases: Phases the task supports; none means every phase
        parameters: Parameter table of the task
        description: Human-readable description
        name: Display name of new instances; defaults to the class name
        factory: Creates instances; defaults to the class itself
        registry: Registry to use instead of the process-wide one

    Raises:
        TypeError: If the decorated object is not a concrete TaskBase subclass
    """

    def wrap(cls: C) -> C:
        if not (isinstance(cls, type) and issubclass(cls, TaskBase)):
            raise TypeError(f"@task can only decorate TaskBase subclasses, got {cls!r}")
        if inspect.isabstract(cls):
            raise TypeError(f"Task class '{cls.__name__}' is abstract")

        target = registry if registry is not None else task_registry
        registration = target.register_task(
            cls,
            task_id,
            phases=phases,
            parameters=parameters,
            description=description or (inspect.getdoc(cls) or "").split("\n")[0],
            name=name,
            factory=factory,
        )
        cls.__task_registration__ = registration
        logger.debug(f"Task class '{cls.__name__}' registered as '{task_id}'")
        return cls

    return wrap
