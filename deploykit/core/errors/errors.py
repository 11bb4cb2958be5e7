"""Error hierarchy and error management for deploykit.

Every error raised by the engine is a BaseError carrying an ErrorContext,
so front ends can report failures uniformly. Several errors additionally
derive from the matching built-in exception (ValueError, TypeError) so
callers that only know the standard hierarchy can still catch them.
"""

import inspect
import logging
import traceback
from collections import defaultdict
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

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

logger = logging.getLogger(__name__)


class ErrorContext:
    """Where and while doing what an error happened."""

    def __init__(self, data: ErrorContextData):
        self._data = data

    @classmethod
    def create(
        cls,
        error_type: str,
        error_location: str,
        component: str,
        operation: str,
        task_name: str | None = None,
        sequence_name: str | None = None,
    ) -> "ErrorContext":
        """Build a context.

        Args:
            error_type: Name of the error class being raised
            error_location: ``Class.method`` raising the error
            component: Engine component raising the error
            operation: What the component was doing
            task_name: Task running at the time, if any
            sequence_name: Task sequence running at the time, if any
        """
        return cls(
            ErrorContextData(
                error_type=error_type,
                error_location=error_location,
                component=component,
                operation=operation,
                task_name=task_name,
                sequence_name=sequence_name,
            )
        )

    @property
    def data(self) -> ErrorContextData:
        return self._data

    @property
    def timestamp(self) -> datetime:
        return self._data.timestamp

    def __str__(self) -> str:
        where = f"{self._data.component}.{self._data.operation}"
        if self._data.task_name:
            where += f" (task '{self._data.task_name}')"
        return where


class BaseError(Exception):
    """Base class for all deploykit errors.

    Carries a message, a structured context and the optional exception
    that caused it.
    """

    def __init__(self, message: str, context: ErrorContext, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.context = context
        self.cause = cause
        self.timestamp = datetime.now()
        # Only meaningful when raised while another exception is handled.
        self.traceback = traceback.format_exc() if cause is not None else None

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible summary for reports."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.data.model_dump(mode="json"),
            "cause": repr(self.cause) if self.cause is not None else None,
        }

    def __str__(self) -> str:
        text = f"{type(self).__name__}: {self.message}"
        if self.cause is not None:
            text += f" (caused by: {self.cause})"
        return text


class ValidationError(BaseError):
    """Raised when task parameters or options fail validation."""

    _SHOWN = 3

    def __init__(
        self,
        message: str,
        validation_errors: list[ValidationErrorDetail],
        context: ErrorContext,
        cause: Exception | None = None,
    ):
        super().__init__(message, context, cause)
        self.validation_errors = validation_errors

    def __str__(self) -> str:
        text = super().__str__()
        if not self.validation_errors:
            return text
        shown = [f"{d.location}: {d.message}" for d in self.validation_errors[: self._SHOWN]]
        hidden = len(self.validation_errors) - self._SHOWN
        if hidden > 0:
            shown.append(f"(and {hidden} more)")
        return f"{text} - {'; '.join(shown)}"


class ExecutionError(BaseError):
    """Raised when an execution request cannot be honoured."""


class OperationCancelledError(BaseError):
    """Raised when a cancellation token has been triggered."""


class StateError(BaseError):
    """Raised when a state operation is rejected."""

    def __init__(
        self,
        message: str,
        context: ErrorContext,
        state_context: StateErrorContext,
        cause: Exception | None = None,
    ):
        self.state_context = state_context
        super().__init__(message, context, cause)


class ConfigurationError(BaseError):
    """Raised when the engine is configured or used inconsistently.

    Examples are binding a builder to a phase twice, adding tasks before a
    phase was set, or pointing a store at a missing directory.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext,
        config_context: ConfigurationErrorContext,
        cause: Exception | None = None,
    ):
        self.config_context = config_context
        super().__init__(message, context, cause)


class IncompatibleTaskError(BaseError, ValueError):
    """Raised when a task is added for a phase it does not support."""

    def __init__(
        self,
        message: str,
        context: ErrorContext,
        phase_context: PhaseErrorContext,
        cause: Exception | None = None,
    ):
        self.phase_context = phase_context
        super().__init__(message, context, cause)


class TypeResolutionError(BaseError, TypeError):
    """Raised when a task type cannot be resolved unambiguously."""

    def __init__(
        self,
        message: str,
        context: ErrorContext,
        resolution_context: TypeResolutionErrorContext,
        cause: Exception | None = None,
    ):
        self.resolution_context = resolution_context
        super().__init__(message, context, cause)


class MalformedDescriptionError(BaseError, ValueError):
    """Raised when a task sequence file cannot be parsed."""

    def __init__(
        self,
        message: str,
        context: ErrorContext,
        file_context: FileErrorContext,
        cause: Exception | None = None,
    ):
        self.file_context = file_context
        super().__init__(message, context, cause)


class MalformedStateError(BaseError, ValueError):
    """Raised when a state checkpoint cannot be parsed."""

    def __init__(
        self,
        message: str,
        context: ErrorContext,
        file_context: FileErrorContext,
        cause: Exception | None = None,
    ):
        self.file_context = file_context
        super().__init__(message, context, cause)


class TaskExecutionFailure(BaseError):
    """Raised (and recorded) when a task fails inside a task sequence."""

    def __init__(
        self,
        message: str,
        context: ErrorContext,
        failure_context: TaskFailureContext,
        cause: Exception | None = None,
    ):
        self.failure_context = failure_context
        super().__init__(message, context, cause)

    @property
    def task_name(self) -> str:
        return self.failure_context.task_name

    @property
    def index(self) -> int:
        return self.failure_context.index

    @property
    def critical(self) -> bool:
        return self.failure_context.critical




ErrorHandler = Callable[[BaseError, dict[str, Any]], Awaitable[None] | None]
"""Called with the error and the boundary's component, operation and task name."""

ErrorFactory = Callable[[Exception], BaseError]


class ErrorManager:
    """Dispatches errors crossing an error boundary to registered handlers.

    Handlers registered for an error's type (or a base of it) run first,
    global handlers last, each group in registration order.
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[type[BaseError], list[ErrorHandler]] = defaultdict(list)
        self._global_handlers: list[ErrorHandler] = []

    def register(self, error_type: type[BaseError], handler: ErrorHandler) -> None:
        """Handle errors of ``error_type`` and its subclasses with ``handler``."""
        self._handlers[error_type].append(handler)

    def register_global(self, handler: ErrorHandler) -> None:
        self._global_handlers.append(handler)

    def _handlers_for(self, error: BaseError) -> list[ErrorHandler]:
        matching = [h for t, hs in self._handlers.items() if isinstance(error, t) for h in hs]
        return matching + self._global_handlers

    async def _dispatch(self, error: BaseError, context: dict[str, Any]) -> None:
        for handler in self._handlers_for(error):
            try:
                if inspect.iscoroutinefunction(handler):
                    await handler(error, context)
                else:
                    handler(error, context)
            except Exception:
                # A broken handler must not replace the error being handled.
                logger.exception(f"Error handler {handler!r} failed")

    @asynccontextmanager
    async def error_boundary(
        self,
        component: str,
        operation: str,
        task_name: str | None = None,
        error_factory: ErrorFactory | None = None,
    ) -> AsyncIterator[None]:
        """Run the body of the ``async with`` block under error handling.

        A BaseError is dispatched to the handlers and re-raised as is. Any
        other exception is first converted by ``error_factory`` (into an
        ExecutionError if none is given) and the result raised from it.
        ``asyncio.CancelledError`` is not an Exception and passes through.

        Args:
            component: Component owning the boundary
            operation: Operation performed inside the boundary
            task_name: Task performed inside the boundary, if any
            error_factory: Converts foreign exceptions to a BaseError
        """
        details = {"component": component, "operation": operation, "task_name": task_name}
        try:
            yield
        except BaseError as e:
            await self._dispatch(e, details)
            raise
        except Exception as e:
            if error_factory is None:
                converted: BaseError = ExecutionError(
                    message=str(e) or type(e).__name__,
                    context=ErrorContext.create(
                        error_type=type(e).__name__,
                        error_location=f"{component}.{operation}",
                        component=component,
                        operation=operation,
                        task_name=task_name,
                    ),
                    cause=e,
                )
            else:
                converted = error_factory(e)
            await self._dispatch(converted, details)
            raise converted from e


def default_logging_handler(error: BaseError, context: dict[str, Any]) -> None:
    """Log the diagnostic details of an error.

    The components that catch errors report the failure themselves; this
    handler adds the context and cause at debug level.
    """
    logger.debug(f"{type(error).__name__} in {error.context}: {error.message}")
    if error.cause is not None:
        logger.debug(f"Caused by {error.cause!r}")


default_manager = ErrorManager()
"""Error manager used when no other one is configured."""
default_manager.register_global(default_logging_handler)
