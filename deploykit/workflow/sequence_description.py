"""Serialisable blueprints of task sequences.

Sequence files look like::

    {
      "ID": "8a7c...",
      "Name": "Install workstation",
      "Phase": "Installation",
      "Tasks": [
        {"Task": "create-directory", "Parameters": {"path": "C:\\\\Deploy"}}
      ]
    }
"""

import asyncio
import json
import logging
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from deploykit.core.errors import (
    ConfigurationError,
    ConfigurationErrorContext,
    ErrorContext,
    FileErrorContext,
    IncompatibleTaskError,
    MalformedDescriptionError,
    PhaseErrorContext,
)
from deploykit.state import Phase, PhaseField
from deploykit.tasks import TaskRegistry, task_registry

from .descriptions import TaskDescription, TaskDescriptionFactory

if TYPE_CHECKING:
    from .sequence import TaskSequence

logger = logging.getLogger(__name__)


class TaskSequenceDescription(BaseModel):
    """A named, single-phase, ordered list of task descriptions."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, alias="ID", min_length=1)
    name: str | None = Field(default=None, alias="Name")
    description: str | None = Field(default=None, alias="Description")
    phase: PhaseField = Field(default=Phase.INSTALLATION, alias="Phase")
    tasks: list[TaskDescription] = Field(default_factory=list, alias="Tasks")

    @model_validator(mode="after")
    def default_name(self) -> "TaskSequenceDescription":
        if not self.name:
            self.name = f"Task Sequence {self.id}"
        return self

    def to_json(self) -> str:
        """Indented JSON with unset optional fields left out."""
        data = self.model_dump(mode="json", by_alias=True)
        data = {k: v for k, v in data.items() if v is not None}
        return json.dumps(data, indent=2)

    @classmethod
    async def parse(cls, path: str | Path) -> "TaskSequenceDescription":
        """Read a sequence file.

        Raises:
            MalformedDescriptionError: If the file is not a valid description
            OSError: If the file cannot be read
        """
        path = Path(path)
        data = await asyncio.to_thread(path.read_bytes)
        try:
            return cls.model_validate_json(data.decode("utf-8"))
        except (UnicodeDecodeError, PydanticValidationError) as e:
            raise MalformedDescriptionError(
                message=f"Task sequence file '{path}' is malformed",
                context=ErrorContext.create(
                    error_type="MalformedDescriptionError",
                    error_location="TaskSequenceDescription.parse",
                    component="TaskSequenceDescription",
                    operation="parse",
                ),
                file_context=FileErrorContext(path=str(path), operation="parse"),
                cause=e,
            ) from e

    async def save(self, path: str | Path) -> None:
        """Write the description to ``path``, creating parent directories."""
        path = Path(path)
        text = self.to_json()

        def write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")

        await asyncio.to_thread(write)
        logger.info(f"Task sequence '{self.id}' saved to {path}")

    @classmethod
    def from_task_sequence(
        cls,
        sequence: "TaskSequence",
        id: str | None = None,
        name: str | None = None,
        description: str | None = None,
        registry: TaskRegistry | None = None,
    ) -> "TaskSequenceDescription":
        """Describe a live task sequence with the current parameter values."""
        factory = TaskDescriptionFactory(registry)
        values: dict[str, Any] = {
            "phase": sequence.phase,
            "name": name,
            "description": description,
            "tasks": [factory.from_task(step) for step in sequence.steps],
        }
        if id:
            values["id"] = id
        return cls(**values)


class TaskSequenceDescriptionBuilder:
    """Incrementally assembles a TaskSequenceDescription.

    Follows the same contract as the live-task builder: the phase is set
    exactly once, before any task is added, and every task must support it.
    """

    def __init__(self, registry: TaskRegistry | None = None):
        self._registry = registry or task_registry
        self._phase: Phase | None = None
        self._tasks: list[TaskDescription] = []
        self._id: str | None = None
        self._name: str | None = None
        self._description: str | None = None

    @property
    def phase(self) -> Phase | None:
        return self._phase

    def for_phase(self, phase: Phase | str) -> "TaskSequenceDescriptionBuilder":
        if self._phase is not None:
            raise _phase_error("The phase of the task sequence has already been set", "for_phase", str(self._phase))
        self._phase = Phase.parse(phase)
        return self

    def with_id(self, id: str) -> "TaskSequenceDescriptionBuilder":
        self._id = id
        return self

    def with_name(self, name: str) -> "TaskSequenceDescriptionBuilder":
        self._name = name
        return self

    def with_description(self, description: str) -> "TaskSequenceDescriptionBuilder":
        self._description = description
        return self

    def add(
        self, task: str | TaskDescription, parameters: Mapping[str, Any] | None = None
    ) -> "TaskSequenceDescriptionBuilder":
        """Append a task given by type name and parameters, or as a description."""
        self._tasks.append(self._checked(task, parameters, "add"))
        return self

    def insert(
        self, index: int, task: str | TaskDescription, parameters: Mapping[str, Any] | None = None
    ) -> "TaskSequenceDescriptionBuilder":
        """Insert a task at ``index``, keeping the order of all others.

        Raises:
            IndexError: If ``index`` is not between 0 and the number of tasks
        """
        description = self._checked(task, parameters, "insert")
        if not 0 <= index <= len(self._tasks):
            raise IndexError(f"Cannot insert at {index} into a sequence of {len(self._tasks)} tasks")
        self._tasks.insert(index, description)
        return self

    def build(self) -> TaskSequenceDescription:
        if self._phase is None:
            raise _phase_error("The phase of the task sequence has not been set", "build", "None")
        values: dict[str, Any] = {
            "phase": self._phase,
            "name": self._name,
            "description": self._description,
            "tasks": [t.model_copy(deep=True) for t in self._tasks],
        }
        if self._id:
            values["id"] = self._id
        return TaskSequenceDescription(**values)

    def _checked(
        self, task: str | TaskDescription, parameters: Mapping[str, Any] | None, operation: str
    ) -> TaskDescription:
        if self._phase is None:
            raise _phase_error("The phase of the task sequence must be set before adding tasks", operation, "None")

        if isinstance(task, TaskDescription):
            description = task.model_copy(deep=True)
            if parameters:
                description.parameters.update(parameters)
        else:
            description = TaskDescription(task=task, parameters=dict(parameters or {}))

        registration = description.registration(self._registry)
        if not registration.supports(self._phase):
            raise incompatible_task_error(
                registration.task_id,
                self._phase,
                sorted(p.label for p in registration.phases),
                f"TaskSequenceDescriptionBuilder.{operation}",
            )
        return description


def _phase_error(message: str, operation: str, actual: str) -> ConfigurationError:
    return ConfigurationError(
        message=message,
        context=ErrorContext.create(
            error_type="ConfigurationError",
            error_location=f"TaskSequenceDescriptionBuilder.{operation}",
            component="TaskSequenceDescriptionBuilder",
            operation=operation,
        ),
        config_context=ConfigurationErrorContext(
            config_key="phase",
            config_section="task_sequence",
            expected_type="phase set exactly once",
            actual_value=actual,
        ),
    )


def incompatible_task_error(
    task_name: str, phase: Phase, supported: list[str], operation: str
) -> IncompatibleTaskError:
    """Error for a task that does not support the phase of its sequence."""
    return IncompatibleTaskError(
        message=f"Task '{task_name}' cannot execute in phase {phase}",
        context=ErrorContext.create(
            error_type="IncompatibleTaskError",
            error_location=operation,
            component=operation.split(".")[0],
            operation=operation.split(".")[-1],
            task_name=task_name,
        ),
        phase_context=PhaseErrorContext(task_name=task_name, phase=phase.label, supported_phases=supported),
    )
