"""Phase-locked construction of task sequences."""

import logging

from deploykit.core.errors import (
    ConfigurationError,
    ConfigurationErrorContext,
    ErrorContext,
    ErrorManager,
)
from deploykit.state import Phase
from deploykit.tasks import Task, TaskBase, TaskRegistry, task_registry

from .sequence import TaskSequence
from .sequence_description import TaskSequenceDescription, incompatible_task_error
from .steps import (
    ConfigureTask,
    ConfigureTaskFromState,
    SelfConfiguringTask,
    SequenceStep,
    TaskResolver,
    default_resolver,
)

logger = logging.getLogger(__name__)


class TaskSequenceBuilder:
    """Accumulates the steps of a task sequence bound to a single phase.

    The phase must be set with ``for_phase`` exactly once and before any
    step is added; every step must support that phase. Incompatible steps
    are rejected here, never at run time.
    """

    def __init__(
        self,
        resolver: TaskResolver | None = None,
        registry: TaskRegistry | None = None,
        error_manager: ErrorManager | None = None,
    ):
        self._resolver = resolver or default_resolver
        self._registry = registry or task_registry
        self._error_manager = error_manager
        self._phase: Phase | None = None
        self._steps: list[SequenceStep] = []

    @property
    def phase(self) -> Phase | None:
        return self._phase

    def __len__(self) -> int:
        return len(self._steps)

    def for_phase(self, phase: Phase | str) -> "TaskSequenceBuilder":
        """Bind the builder to ``phase``.

        Raises:
            ConfigurationError: If the phase was already set, even to the same value
        """
        if self._phase is not None:
            raise self._phase_error("The phase of the task sequence has already been set", "for_phase")
        self._phase = Phase.parse(phase)
        return self

    def add(self, step: SequenceStep) -> "TaskSequenceBuilder":
        """Append a task or a self-configuring step."""
        self._steps.append(self._checked(step, "add"))
        return self

    def insert(self, index: int, step: SequenceStep) -> "TaskSequenceBuilder":
        """Insert a step at ``index``, keeping the order of all others.

        Raises:
            IndexError: If ``index`` is not between 0 and the number of steps
        """
        step = self._checked(step, "insert")
        if not 0 <= index <= len(self._steps):
            raise IndexError(f"Cannot insert at {index} into a sequence of {len(self._steps)} tasks")
        self._steps.insert(index, step)
        return self

    def add_task(self, task_class: type[Task], configure: ConfigureTask | None = None) -> "TaskSequenceBuilder":
        """Resolve ``task_class``, configure it right away and append it."""
        task = self._resolver(task_class)
        if configure is not None:
            configure(task)
        return self.add(task)

    def add_self_configuring(
        self, task_class: type[Task], configure: ConfigureTaskFromState
    ) -> "TaskSequenceBuilder":
        """Resolve ``task_class`` and append it with a state-aware callback
        that runs immediately before the task executes."""
        return self.add(SelfConfiguringTask(self._resolver(task_class), configure))

    def from_description(self, description: TaskSequenceDescription) -> "TaskSequenceBuilder":
        """Bind to the description's phase and add all of its tasks in order."""
        self.for_phase(description.phase)
        for task_description in description.tasks:
            self.add(task_description.to_task(self._resolver, self._registry))
        logger.debug(f"Added {len(description.tasks)} tasks from task sequence '{description.id}'")
        return self

    def build(self) -> TaskSequence:
        """Snapshot the accumulated steps into a TaskSequence.

        Raises:
            ConfigurationError: If no phase has been set
        """
        if self._phase is None:
            raise self._phase_error("The phase of the task sequence has not been set", "build")
        return TaskSequence(self._phase, list(self._steps), error_manager=self._error_manager)

    def _checked(self, step: SequenceStep, operation: str) -> SequenceStep:
        if self._phase is None:
            raise self._phase_error("The phase of the task sequence must be set before adding tasks", operation)

        if not step.can_execute(self._phase):
            task = step.task if isinstance(step, SelfConfiguringTask) else step
            registration = type(task).registration() if isinstance(task, TaskBase) else None
            supported = sorted(p.label for p in registration.phases) if registration else []
            raise incompatible_task_error(step.name, self._phase, supported, f"TaskSequenceBuilder.{operation}")
        return step

    def _phase_error(self, message: str, operation: str) -> ConfigurationError:
        return ConfigurationError(
            message=message,
            context=ErrorContext.create(
                error_type="ConfigurationError",
                error_location=f"TaskSequenceBuilder.{operation}",
                component="TaskSequenceBuilder",
                operation=operation,
            ),
            config_context=ConfigurationErrorContext(
                config_key="phase",
                config_section="task_sequence",
                expected_type="phase set exactly once",
                actual_value=str(self._phase),
            ),
        )
