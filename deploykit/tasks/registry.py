"""Registry of task types.

Every task type is registered once, at import time, under a stable string
identifier together with its supported phases and its parameter table.
Sequence files reference tasks by that identifier; the registry also
accepts the fully qualified and the short class name of a task.
"""

import builtins
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from deploykit.core.errors import ErrorContext, TypeResolutionError, TypeResolutionErrorContext
from deploykit.core.registry import BaseRegistry
from deploykit.state import Phase

from .base import Task
from .parameters import BASE_PARAMETERS, ParameterDescription

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Task]


@dataclass(frozen=True)
class TaskRegistration:
    """Static metadata of a task type."""

    task_id: str
    task_class: type[Task]
    factory: TaskFactory
    phases: frozenset[Phase] = frozenset()
    parameters: tuple[ParameterDescription, ...] = BASE_PARAMETERS
    name: str = ""
    description: str = field(default="", compare=False)

    @property
    def qualified_name(self) -> str:
        return f"{self.task_class.__module__}.{self.task_class.__qualname__}"

    @property
    def aliases(self) -> list[str]:
        return [self.qualified_name, self.task_class.__name__]

    def supports(self, phase: Phase) -> bool:
        """A task without declared phases supports every phase."""
        return not self.phases or phase in self.phases

    def parameter(self, name: str) -> ParameterDescription | None:
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None


class TaskRegistry(BaseRegistry[TaskRegistration]):
    """Registry mapping task identifiers to task registrations."""

    def __init__(self) -> None:
        self._registrations: dict[str, TaskRegistration] = {}
        self._aliases: dict[str, builtins.list[str]] = {}

    def register_task(
        self,
        task_class: type[Task],
        task_id: str,
        phases: Any = (),
        parameters: Any = (),
        description: str = "",
        name: str | None = None,
        factory: TaskFactory | None = None,
    ) -> TaskRegistration:
        """Create and register the registration of ``task_class``.

        The base parameters shared by all tasks are placed in front of the
        declared ones.

        Returns:
            The new registration
        """
        declared = tuple(parameters)
        names = {p.name for p in declared}
        merged = tuple(p for p in BASE_PARAMETERS if p.name not in names) + declared

        registration = TaskRegistration(
            task_id=task_id,
            task_class=task_class,
            factory=factory or task_class,
            phases=frozenset(Phase.parse(p) for p in phases),
            parameters=merged,
            name=name or task_class.__name__,
            description=description,
        )
        self.register(task_id, registration)
        return registration

    def register(self, name: str, obj: TaskRegistration, **metadata: Any) -> None:
        """Register ``obj`` under the identifier ``name``.

        Raises:
            ValueError: If the identifier is taken by a different task type
        """
        existing = self._registrations.get(name)
        if existing is not None:
            if existing.qualified_name != obj.qualified_name:
                raise ValueError(
                    f"Task identifier '{name}' is already registered for {existing.qualified_name}"
                )
            logger.debug(f"Task '{name}' is registered again, replacing previous registration")
            self._remove_aliases(name)

        self._registrations[name] = obj
        for alias in obj.aliases:
            self._aliases.setdefault(alias, []).append(name)
        logger.debug(f"Registered task: {name} ({obj.qualified_name})")

    def get(self, name: str, expected_type: type | None = None) -> TaskRegistration:
        """Get a registration by its exact identifier.

        Raises:
            KeyError: If no task is registered under ``name``
            TypeError: If the task class is not a subclass of ``expected_type``
        """
        if name not in self._registrations:
            raise KeyError(f"Task '{name}' not found in registry")

        registration = self._registrations[name]
        if expected_type is not None and not issubclass(registration.task_class, expected_type):
            raise TypeError(f"Task '{name}' is not of expected type {expected_type}")
        return registration

    def contains(self, name: str) -> bool:
        return name in self._registrations

    def list(self, filter_criteria: dict[str, Any] | None = None) -> builtins.list[str]:
        """List task identifiers.

        Args:
            filter_criteria: Optional {"phase": Phase} to list only tasks
                supporting that phase
        """
        names = builtins.list(self._registrations)
        if filter_criteria and "phase" in filter_criteria:
            phase = Phase.parse(filter_criteria["phase"])
            names = [n for n in names if self._registrations[n].supports(phase)]
        return names

    def clear(self) -> None:
        self._registrations.clear()
        self._aliases.clear()

    def remove(self, name: str) -> bool:
        if name not in self._registrations:
            return False
        self._remove_aliases(name)
        del self._registrations[name]
        return True

    def update(self, name: str, obj: TaskRegistration, **metadata: Any) -> bool:
        existed = self.remove(name)
        self.register(name, obj)
        return existed

    def list_aliases(self, canonical_name: str) -> builtins.list[str]:
        if canonical_name not in self._registrations:
            return []
        return self._registrations[canonical_name].aliases

    def registration_for(self, task_class: type) -> TaskRegistration | None:
        """Find the registration of exactly ``task_class``."""
        for registration in self._registrations.values():
            if registration.task_class is task_class:
                return registration
        return None

    def resolve(self, type_name: str) -> TaskRegistration:
        """Resolve a task type name from a sequence file.

        Tried in order: the exact identifier, an exact class name (fully
        qualified or short) and finally a case-insensitive match on
        identifiers and class names. The first tier producing exactly one
        task wins.

        Raises:
            TypeResolutionError: If the name is unknown or ambiguous
        """
        if type_name in self._registrations:
            return self._registrations[type_name]

        candidates = self._aliases.get(type_name, [])
        if not candidates:
            folded = type_name.casefold()
            matches = {n for n in self._registrations if n.casefold() == folded}
            for alias, names in self._aliases.items():
                if alias.casefold() == folded:
                    matches.update(names)
            candidates = sorted(matches)

        if len(candidates) == 1:
            return self._registrations[candidates[0]]

        if candidates:
            message = f"Task type '{type_name}' is ambiguous: {', '.join(candidates)}"
        else:
            message = f"Task type '{type_name}' is not registered"
        raise TypeResolutionError(
            message=message,
            context=ErrorContext.create(
                error_type="TypeResolutionError",
                error_location="TaskRegistry.resolve",
                component="TaskRegistry",
                operation="resolve",
            ),
            resolution_context=TypeResolutionErrorContext(task_type=type_name, candidates=builtins.list(candidates)),
        )

    def _remove_aliases(self, name: str) -> None:
        for alias in self._registrations[name].aliases:
            names = self._aliases.get(alias, [])
            if name in names:
                names.remove(name)
            if not names:
                self._aliases.pop(alias, None)


task_registry = TaskRegistry()
"""Process-wide task registry populated by the @task decorator."""
