"""Execution of task sequences.

A TaskSequence is an immutable, phase-bound list of steps. Executing it runs
the steps strictly one after another against a State and reports the
outcome of every step in a SequenceResult.
"""

import asyncio
import logging
from collections.abc import Iterable, Iterator
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from deploykit.core.cancellation import CancellationToken
from deploykit.core.errors import (
    BaseError,
    ErrorContext,
    ErrorManager,
    ExecutionError,
    TaskExecutionFailure,
    TaskFailureContext,
    default_manager,
)
from deploykit.state import Phase, PhaseField, State
from deploykit.tasks import Task, TaskRegistry

from .sequence_description import TaskSequenceDescription
from .steps import SelfConfiguringTask, SequenceStep, inner_task

logger = logging.getLogger(__name__)


class SequenceStatus(str, Enum):
    IDLE = "Idle"
    RUNNING = "Running"
    COMPLETED = "Completed"
    ABORTED = "Aborted"


class TaskOutcomeStatus(str, Enum):
    NOT_ATTEMPTED = "NotAttempted"
    SKIPPED = "Skipped"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class TaskOutcome(BaseModel):
    """What happened to one step of a run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    index: int
    name: str
    critical: bool
    status: TaskOutcomeStatus = TaskOutcomeStatus.NOT_ATTEMPTED
    error: str | None = None
    error_type: str | None = None
    failure: TaskExecutionFailure | None = Field(default=None, exclude=True)

    @property
    def attempted(self) -> bool:
        return self.status in (TaskOutcomeStatus.SUCCEEDED, TaskOutcomeStatus.FAILED)

    @property
    def succeeded(self) -> bool:
        return self.status == TaskOutcomeStatus.SUCCEEDED


class SequenceResult(BaseModel):
    """Outcome of one execution of a task sequence."""

    phase: PhaseField
    status: SequenceStatus
    outcomes: list[TaskOutcome] = Field(default_factory=list)
    aborted_at: int | None = None
    cancelled: bool = False
    started_at: datetime
    finished_at: datetime

    @property
    def succeeded(self) -> bool:
        return self.status == SequenceStatus.COMPLETED

    @property
    def attempted(self) -> list[TaskOutcome]:
        return [o for o in self.outcomes if o.attempted]

    @property
    def failed(self) -> list[TaskOutcome]:
        return [o for o in self.outcomes if o.status == TaskOutcomeStatus.FAILED]


class TaskSequence:
    """An ordered, single-phase list of tasks.

    Steps run strictly sequentially. A failing step is recorded; if its task
    is critical the remaining steps are not attempted and the run ends as
    ABORTED, otherwise execution continues with the next step.
    ``state.progress`` is advanced past every step that did not abort the
    run, so ``execute(..., resume=True)`` continues where a previous process
    stopped.
    """

    def __init__(
        self,
        phase: Phase,
        steps: Iterable[SequenceStep],
        error_manager: ErrorManager | None = None,
    ):
        self._phase = Phase.parse(phase)
        self._steps: tuple[SequenceStep, ...] = tuple(steps)
        self._errors = error_manager or default_manager
        self._status = SequenceStatus.IDLE

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def steps(self) -> tuple[SequenceStep, ...]:
        return self._steps

    @property
    def tasks(self) -> tuple[Task, ...]:
        """The tasks of all steps, unwrapping self-configuring steps."""
        return tuple(inner_task(step) for step in self._steps)

    @property
    def status(self) -> SequenceStatus:
        return self._status

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[SequenceStep]:
        return iter(self._steps)

    def __repr__(self) -> str:
        return f"TaskSequence(phase={self._phase}, steps={len(self._steps)}, status={self._status.value})"

    async def execute(
        self,
        state: State,
        cancellation: CancellationToken | None = None,
        *,
        resume: bool = False,
    ) -> SequenceResult:
        """Run all steps against ``state``.

        Args:
            state: State shared by all tasks of the run
            cancellation: Checked before each step is started
            resume: Start at ``state.progress`` instead of the first step

        Returns:
            Per-step outcomes and the terminal status of the run

        Raises:
            ExecutionError: If the sequence is already running
        """
        if self._status == SequenceStatus.RUNNING:
            raise ExecutionError(
                message="The task sequence is already running",
                context=ErrorContext.create(
                    error_type="ExecutionError",
                    error_location="TaskSequence.execute",
                    component="TaskSequence",
                    operation="execute",
                ),
            )

        self._status = SequenceStatus.RUNNING
        started_at = datetime.now()
        start = state.progress if resume else 0
        if resume and start >= len(self._steps):
            logger.warning("The task sequence has already completed, there is nothing to resume")
        elif resume and start > 0:
            logger.info(f"Resuming the task sequence at task #{start}")

        outcomes: list[TaskOutcome] = []
        aborted_at: int | None = None
        cancelled = False

        try:
            for index, step in enumerate(self._steps):
                task = inner_task(step)
                outcome = TaskOutcome(index=index, name=task.name, critical=task.is_critical)
                outcomes.append(outcome)

                if index < start:
                    outcome.status = TaskOutcomeStatus.SKIPPED
                    continue
                if aborted_at is not None or cancelled:
                    continue
                if cancellation is not None and cancellation.cancelled:
                    logger.warning(f'The task sequence was cancelled before task #{index} "{task.name}"')
                    cancelled = True
                    continue

                failure = await self._execute_step(index, step, state, cancellation)
                # Configuration may have changed these.
                outcome.name = task.name
                outcome.critical = task.is_critical

                if failure is None:
                    logger.info(f'Task #{index} "{task.name}" completed')
                    outcome.status = TaskOutcomeStatus.SUCCEEDED
                    state.progress = index + 1
                    continue

                outcome.status = TaskOutcomeStatus.FAILED
                outcome.failure = failure
                outcome.error = failure.message
                outcome.error_type = type(failure.cause or failure).__name__

                if task.is_critical:
                    logger.error(
                        f'Task #{index} "{task.name}" failed: {failure.message}. '
                        "The task is critical, the task sequence is aborted"
                    )
                    aborted_at = index
                else:
                    logger.warning(
                        f'Task #{index} "{task.name}" failed: {failure.message}. '
                        "The task is not critical, continuing with the next task"
                    )
                    state.progress = index + 1

        except asyncio.CancelledError:
            self._status = SequenceStatus.ABORTED
            raise

        if cancellation is not None and cancellation.cancelled:
            cancelled = True
        self._status = (
            SequenceStatus.ABORTED if aborted_at is not None or cancelled else SequenceStatus.COMPLETED
        )

        result = SequenceResult(
            phase=self._phase,
            status=self._status,
            outcomes=outcomes,
            aborted_at=aborted_at,
            cancelled=cancelled,
            started_at=started_at,
            finished_at=datetime.now(),
        )
        logger.info(
            f"Task sequence for phase {self._phase} finished as {self._status.value}: "
            f"{sum(o.succeeded for o in outcomes)} of {len(outcomes)} tasks succeeded"
        )
        return result

    async def _execute_step(
        self,
        index: int,
        step: SequenceStep,
        state: State,
        cancellation: CancellationToken | None,
    ) -> TaskExecutionFailure | None:
        task = inner_task(step)
        logger.info(f'Task #{index} "{task.name}" is starting')

        def to_failure(error: Exception) -> TaskExecutionFailure:
            return TaskExecutionFailure(
                message=str(error) or type(error).__name__,
                context=ErrorContext.create(
                    error_type=type(error).__name__,
                    error_location="TaskSequence.execute",
                    component="TaskSequence",
                    operation="execute_task",
                    task_name=task.name,
                ),
                failure_context=TaskFailureContext(task_name=task.name, index=index, critical=task.is_critical),
                cause=error,
            )

        try:
            async with self._errors.error_boundary(
                component="TaskSequence",
                operation="execute_task",
                task_name=task.name,
                error_factory=to_failure,
            ):
                if isinstance(step, SelfConfiguringTask):
                    step.configure(task, state)
                await task.execute(state, cancellation)
        except TaskExecutionFailure as e:
            return e
        except BaseError as e:
            return to_failure(e)
        return None

    def to_description(
        self,
        id: str | None = None,
        name: str | None = None,
        description: str | None = None,
        registry: TaskRegistry | None = None,
    ) -> TaskSequenceDescription:
        """Describe this sequence with the current parameter values of its tasks."""
        return TaskSequenceDescription.from_task_sequence(self, id=id, name=name, description=description, registry=registry)

    async def save(
        self,
        path: str | Path,
        id: str | None = None,
        name: str | None = None,
        description: str | None = None,
    ) -> TaskSequenceDescription:
        """Write this sequence as a sequence file and return its description."""
        result = self.to_description(id=id, name=name, description=description)
        await result.save(path)
        return result
