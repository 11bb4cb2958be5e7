"""Built-in task pausing a task sequence."""

import asyncio
import logging
from datetime import timedelta

from deploykit.core.cancellation import CancellationToken
from deploykit.state import State

from ..base import TaskBase
from ..decorators import task
from ..parameters import ParameterDescription

logger = logging.getLogger(__name__)


@task(
    "delay",
    parameters=[
        ParameterDescription(name="duration", required=True, type=timedelta, description="How long to wait"),
        ParameterDescription(name="reason", type=str, description="Why the sequence waits, for the log"),
    ],
)
class Delay(TaskBase):
    """Waits for a fixed amount of time; cancellation ends the wait early."""

    duration: timedelta | None
    reason: str | None

    async def run(self, state: State, cancellation: CancellationToken | None = None) -> None:
        seconds = max(self.duration.total_seconds(), 0.0)
        if self.reason:
            logger.info(f"Waiting for {self.duration}: {self.reason}")
        else:
            logger.info(f"Waiting for {self.duration}")

        if cancellation is None:
            await asyncio.sleep(seconds)
            return

        try:
            await asyncio.wait_for(cancellation.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        cancellation.raise_if_cancelled(operation=self.name)
