"""Serialisable, type-erased descriptions of tasks.

A TaskDescription names a task type by its registered identifier and holds
the values of its parameters. It is the unit sequence files are made of.
"""

import inspect
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from deploykit.core.errors import (
    ErrorContext,
    TypeResolutionError,
    TypeResolutionErrorContext,
    ValidationError,
    ValidationErrorDetail,
)
from deploykit.tasks import ParameterDescription, Task, TaskRegistration, TaskRegistry, task_registry

from .steps import SelfConfiguringTask, TaskResolver, default_resolver

logger = logging.getLogger(__name__)


class TaskDescription(BaseModel):
    """Blueprint of a single task: its type and its parameter values."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    task: str = Field(..., alias="Task", min_length=1, description="Registered identifier of the task type")
    parameters: dict[str, Any] = Field(default_factory=dict, alias="Parameters")

    def registration(self, registry: TaskRegistry | None = None) -> TaskRegistration:
        """Resolve the task type.

        Raises:
            TypeResolutionError: If the type is unknown or ambiguous
        """
        return (registry or task_registry).resolve(self.task)

    def parameter_descriptions(self, registry: TaskRegistry | None = None) -> tuple[ParameterDescription, ...]:
        return self.registration(registry).parameters

    def to_task(self, resolver: TaskResolver | None = None, registry: TaskRegistry | None = None) -> Task:
        """Instantiate the task and apply the stored parameter values.

        Values for names that are not parameters of the task are skipped.

        Raises:
            TypeResolutionError: If the type is unknown or ambiguous
            ValidationError: If a value cannot be converted to the parameter's type
        """
        registration = self.registration(registry)
        instance = (resolver or default_resolver)(registration.task_class)

        errors: list[ValidationErrorDetail] = []
        for name, value in self.parameters.items():
            parameter = registration.parameter(name)
            if parameter is None:
                logger.debug(f"Skipping '{name}', which is not a parameter of task '{registration.task_id}'")
                continue
            try:
                setattr(instance, name, parameter.coerce(value))
            except PydanticValidationError as e:
                errors.append(ValidationErrorDetail(location=name, message=str(e), error_type="invalid_value"))

        if errors:
            raise ValidationError(
                message=f"Invalid parameter values for task '{registration.task_id}'",
                validation_errors=errors,
                context=ErrorContext.create(
                    error_type="ValidationError",
                    error_location="TaskDescription.to_task",
                    component="TaskDescription",
                    operation="to_task",
                    task_name=registration.task_id,
                ),
            )
        return instance


class TaskDescriptionFactory:
    """Creates task descriptions from task types and live tasks."""

    def __init__(self, registry: TaskRegistry | None = None):
        self._registry = registry or task_registry

    def create(self, task_type: type | SelfConfiguringTask) -> TaskDescription:
        """Describe ``task_type`` without any parameter values.

        A self-configuring step is described as its inner task, since the
        configuration callback cannot be serialised.

        Raises:
            TypeResolutionError: If the type is not a concrete, registered task
        """
        return TaskDescription(task=self._registration(task_type).task_id)

    def from_type(self, type_name: str) -> TaskDescription:
        """Describe the task registered under ``type_name``."""
        return TaskDescription(task=self._registry.resolve(type_name).task_id)

    def from_task(self, task: Task | SelfConfiguringTask) -> TaskDescription:
        """Describe a live task including the current value of every parameter."""
        if isinstance(task, SelfConfiguringTask):
            task = task.task
        registration = self._registration(type(task))
        parameters = {
            p.name: p.dump(getattr(task, p.name, None)) for p in registration.parameters
        }
        return TaskDescription(task=registration.task_id, parameters=parameters)

    def _registration(self, task_type: type | SelfConfiguringTask) -> TaskRegistration:
        if isinstance(task_type, SelfConfiguringTask):
            task_type = type(task_type.task)

        name = getattr(task_type, "__qualname__", repr(task_type))
        if not isinstance(task_type, type) or not issubclass(task_type, Task):
            raise self._error(f"'{name}' is not a task type", name)
        if inspect.isabstract(task_type):
            raise self._error(f"Task type '{name}' is abstract", name)

        registration = self._registry.registration_for(task_type)
        if registration is None:
            raise self._error(f"Task type '{name}' is not registered", name)
        return registration

    @staticmethod
    def _error(message: str, task_type: str) -> TypeResolutionError:
        return TypeResolutionError(
            message=message,
            context=ErrorContext.create(
                error_type="TypeResolutionError",
                error_location="TaskDescriptionFactory.create",
                component="TaskDescriptionFactory",
                operation="create",
            ),
            resolution_context=TypeResolutionErrorContext(task_type=task_type),
        )
