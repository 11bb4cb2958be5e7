"""Elements of a task sequence and how tasks are instantiated."""

from collections.abc import Callable
from dataclasses import dataclass

from deploykit.state import Phase, State
from deploykit.tasks import Task, TaskBase

TaskResolver = Callable[[type[Task]], Task]
"""Creates a fresh task instance of the given type."""

ConfigureTask = Callable[[Task], None]
ConfigureTaskFromState = Callable[[Task, State], None]


def default_resolver(task_class: type[Task]) -> Task:
    """Create a task through its registered factory, or its constructor."""
    registration = task_class.registration() if issubclass(task_class, TaskBase) else None
    if registration is not None:
        return registration.factory()
    return task_class()


@dataclass(frozen=True)
class SelfConfiguringTask:
    """A task paired with a callback configuring it from the live state.

    The task sequence calls ``configure(task, state)`` immediately before
    executing the task, so the callback observes everything earlier tasks
    of the same run wrote to the state.
    """

    task: Task
    configure: ConfigureTaskFromState

    @property
    def name(self) -> str:
        return self.task.name

    @property
    def is_critical(self) -> bool:
        return self.task.is_critical

    def can_execute(self, phase: Phase) -> bool:
        return self.task.can_execute(phase)


SequenceStep = Task | SelfConfiguringTask


def inner_task(step: SequenceStep) -> Task:
    """The task a step executes."""
    return step.task if isinstance(step, SelfConfiguringTask) else step
