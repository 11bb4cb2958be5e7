"""Strict Pydantic models carrying structured error context."""

from datetime import datetime

from pydantic import Field

from deploykit.core.models import StrictBaseModel


class ErrorContextData(StrictBaseModel):
    """Context shared by every deploykit error."""

    error_type: str = Field(..., description="Name of the error class")
    error_location: str = Field(..., description="Class and method that raised the error")
    timestamp: datetime = Field(default_factory=datetime.now)
    component: str = Field(..., description="Engine component, e.g. TaskSequence")
    operation: str = Field(..., description="What the component was doing")

    # Optional workflow coordinates
    task_name: str | None = Field(default=None, description="Task being processed")
    sequence_name: str | None = Field(default=None, description="Task sequence being processed")


class ValidationErrorDetail(StrictBaseModel):
    """A single validation failure."""

    location: str = Field(..., description="Parameter or field that failed validation")
    message: str = Field(..., description="What is wrong with the value")
    error_type: str = Field(..., description="Kind of validation failure")


class ConfigurationErrorContext(StrictBaseModel):
    """Details of a configuration failure."""

    config_key: str = Field(..., description="Setting that is invalid")
    config_section: str = Field(..., description="Component the setting belongs to")
    expected_type: str = Field(..., description="What the setting should have been")
    actual_value: str = Field(..., description="What was actually provided")


class PhaseErrorContext(StrictBaseModel):
    """Details of a task that was bound to an unsupported phase."""

    task_name: str = Field(..., description="Task that was rejected")
    phase: str = Field(..., description="Phase the builder is bound to")
    supported_phases: list[str] = Field(default_factory=list, description="Phases the task declares")


class TypeResolutionErrorContext(StrictBaseModel):
    """Details of a failed task type lookup."""

    task_type: str = Field(..., description="Type name that was looked up")
    candidates: list[str] = Field(default_factory=list, description="Matching registrations, if ambiguous")


class FileErrorContext(StrictBaseModel):
    """Details of a file that could not be read or parsed."""

    path: str = Field(..., description="File being processed")
    operation: str = Field(..., description="read, write or parse")


class StateErrorContext(StrictBaseModel):
    """Details of a rejected state operation."""

    key: str = Field(..., description="State key involved")
    operation: str = Field(..., description="Operation on the state")


class TaskFailureContext(StrictBaseModel):
    """Details of a task that failed during sequence execution."""

    task_name: str = Field(..., description="Name of the failed task")
    index: int = Field(..., description="Zero-based position in the sequence")
    critical: bool = Field(..., description="Whether the failure aborts the sequence")
