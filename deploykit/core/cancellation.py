"""Cooperative cancellation shared by a running task sequence and its tasks."""

import asyncio

from deploykit.core.errors import ErrorContext, OperationCancelledError


class CancellationToken:
    """A one-way cancellation signal.

    The engine checks the token before starting each task; long-running
    tasks poll ``cancelled`` or await ``wait()`` to stop early.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Wait until cancellation is requested."""
        await self._event.wait()

    def raise_if_cancelled(self, operation: str = "execute") -> None:
        """Raise OperationCancelledError if cancellation was requested."""
        if self.cancelled:
            raise OperationCancelledError(
                message="The operation was cancelled",
                context=ErrorContext.create(
                    error_type="OperationCancelledError",
                    error_location="CancellationToken.raise_if_cancelled",
                    component="CancellationToken",
                    operation=operation,
                ),
            )
