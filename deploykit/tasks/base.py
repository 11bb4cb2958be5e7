"""The task contract and the common base class of all tasks."""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from deploykit.core.cancellation import CancellationToken
from deploykit.core.errors import ErrorContext, ValidationError, ValidationErrorDetail
from deploykit.state import Phase, State

from .parameters import BASE_PARAMETERS, ParameterDescription

if TYPE_CHECKING:
    from .registry import TaskRegistration

logger = logging.getLogger(__name__)


class Task(ABC):
    """A phase-gated unit of work operating on the shared state.

    Tasks report failure by raising; they do not retry and do not log their
    own failures, which is the job of the task sequence running them.
    """

    name: str
    is_critical: bool

    @abstractmethod
    def can_execute(self, phase: Phase) -> bool:
        """Whether the task may run in ``phase``."""

    @abstractmethod
    async def execute(self, state: State, cancellation: CancellationToken | None = None) -> None:
        """Perform the work of the task."""


class TaskBase(Task):
    """Base class of registered tasks.

    Parameters are plain attributes declared in the task's registration.
    ``execute`` fills unset parameters from the state and the environment,
    validates them, honours cancellation and finally calls ``run``.
    """

    __task_registration__: ClassVar["TaskRegistration | None"] = None

    def __init__(self) -> None:
        registration = type(self).registration()
        self.name: str = registration.name if registration else type(self).__name__
        self.is_critical: bool = True
        for parameter in self.parameter_descriptions():
            if parameter.name not in ("name", "is_critical"):
                setattr(self, parameter.name, parameter.initial_value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, is_critical={self.is_critical!r})"

    @classmethod
    def registration(cls) -> "TaskRegistration | None":
        """The registration of exactly this class, if it was registered."""
        return cls.__dict__.get("__task_registration__")

    @classmethod
    def parameter_descriptions(cls) -> tuple[ParameterDescription, ...]:
        registration = cls.registration()
        return registration.parameters if registration else BASE_PARAMETERS

    def can_execute(self, phase: Phase) -> bool:
        registration = type(self).registration()
        return registration is None or registration.supports(phase)

    async def execute(self, state: State, cancellation: CancellationToken | None = None) -> None:
        self.apply_parameter_sources(state)
        self.validate_parameters()
        if cancellation is not None:
            cancellation.raise_if_cancelled(operation=self.name)
        await self.run(state, cancellation)

    @abstractmethod
    async def run(self, state: State, cancellation: CancellationToken | None = None) -> None:
        """Task-specific work, called once parameters are resolved."""

    def apply_parameter_sources(self, state: State, force: bool = False) -> None:
        """Fill parameters from their state keys and environment variables.

        Parameters already holding a value are kept unless ``force`` is set.
        The first source yielding a value wins.
        """
        for parameter in self.parameter_descriptions():
            if not (parameter.from_state or parameter.from_environment):
                continue
            if not force and getattr(self, parameter.name, None) is not None:
                continue

            value = self._lookup(parameter, state)
            if value is not None:
                setattr(self, parameter.name, parameter.coerce(value))
                logger.debug(f"Parameter '{parameter.name}' of task '{self.name}' resolved from sources")

    def validate_parameters(self) -> None:
        """Check required parameters and existence constraints.

        Raises:
            ValidationError: If any parameter is invalid
        """
        errors: list[ValidationErrorDetail] = []
        for parameter in self.parameter_descriptions():
            value = getattr(self, parameter.name, None)
            if value is None:
                if parameter.is_required:
                    errors.append(
                        ValidationErrorDetail(
                            location=parameter.name,
                            message="A value is required",
                            error_type="missing",
                        )
                    )
                continue

            if parameter.must_exist == "file" and not Path(value).is_file():
                errors.append(
                    ValidationErrorDetail(
                        location=parameter.name,
                        message=f"File '{value}' does not exist",
                        error_type="file_not_found",
                    )
                )
            elif parameter.must_exist == "directory" and not Path(value).is_dir():
                errors.append(
                    ValidationErrorDetail(
                        location=parameter.name,
                        message=f"Directory '{value}' does not exist",
                        error_type="directory_not_found",
                    )
                )

        if errors:
            raise ValidationError(
                message=f"Invalid parameters for task '{self.name}'",
                validation_errors=errors,
                context=ErrorContext.create(
                    error_type="ValidationError",
                    error_location=f"{type(self).__name__}.validate_parameters",
                    component="TaskBase",
                    operation="validate_parameters",
                    task_name=self.name,
                ),
            )

    @staticmethod
    def _lookup(parameter: ParameterDescription, state: State) -> Any:
        for key in parameter.from_state:
            value = state[key]
            if value is not None:
                return value
        for variable in parameter.from_environment:
            value = os.environ.get(variable)
            if value is not None:
                return os.path.expandvars(value) if parameter.expand_environment else value
        return None
