"""Error types and error management."""

from .errors import (
    BaseError,
    ConfigurationError,
    ErrorContext,
    ErrorManager,
    ExecutionError,
    IncompatibleTaskError,
    MalformedDescriptionError,
    MalformedStateError,
    OperationCancelledError,
    StateError,
    TaskExecutionFailure,
    TypeResolutionError,
    ValidationError,
    default_logging_handler,
    default_manager,
)
from .models import (
    ConfigurationErrorContext,
    ErrorContextData,
    FileErrorContext,
    PhaseErrorContext,
    StateErrorContext,
    TaskFailureContext,
    TypeResolutionErrorContext,
    ValidationErrorDetail,
)

__all__ = [
    "BaseError",
    "ConfigurationError",
    "ErrorContext",
    "ErrorManager",
    "ExecutionError",
    "IncompatibleTaskError",
    "MalformedDescriptionError",
    "MalformedStateError",
    "OperationCancelledError",
    "StateError",
    "TaskExecutionFailure",
    "TypeResolutionError",
    "ValidationError",
    "default_logging_handler",
    "default_manager",
    "ConfigurationErrorContext",
    "ErrorContextData",
    "FileErrorContext",
    "PhaseErrorContext",
    "StateErrorContext",
    "TaskFailureContext",
    "TypeResolutionErrorContext",
    "ValidationErrorDetail",
]
