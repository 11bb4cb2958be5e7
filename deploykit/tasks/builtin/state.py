"""Built-in tasks manipulating the shared state."""

import logging

from deploykit.core.cancellation import CancellationToken
from deploykit.core.settings import DEFAULT_STATE_FILE
from deploykit.state import Phase, State, WellKnownStates

from ..base import TaskBase
from ..decorators import task
from ..parameters import ParameterDescription

logger = logging.getLogger(__name__)


@task(
    "clear-state",
    parameters=[
        ParameterDescription(name="variable", required=True, type=str, description="State entry to clear"),
    ],
)
class ClearState(TaskBase):
    """Removes a single entry from the state."""

    variable: str | None

    async def run(self, state: State, cancellation: CancellationToken | None = None) -> None:
        if state.clear(self.variable):
            logger.info(f"Cleared state '{self.variable}'")
        else:
            logger.info(f"State '{self.variable}' holds no value, nothing to clear")


@task(
    "persist-state",
    parameters=[
        ParameterDescription(
            name="path",
            from_state=(WellKnownStates.STATE_FILE,),
            type=str,
            description=f"File the state is written to; defaults to {DEFAULT_STATE_FILE}",
        ),
    ],
)
class PersistState(TaskBase):
    """Writes a checkpoint of the state, e.g. before a restart."""

    path: str | None

    async def run(self, state: State, cancellation: CancellationToken | None = None) -> None:
        if not self.path or not self.path.strip():
            self.path = DEFAULT_STATE_FILE
        await state.save(self.path)


@task(
    "reinterpret-state",
    parameters=[
        ParameterDescription(name="source", required=True, type=str, description="State entry to copy from"),
        ParameterDescription(name="destination", required=True, type=str, description="State entry to copy to"),
        ParameterDescription(
            name="source_must_exist",
            default=True,
            type=bool,
            description="Fail if the source holds no value",
        ),
        ParameterDescription(
            name="allow_clear",
            default=False,
            type=bool,
            description="Clear the destination if the source holds no value",
        ),
    ],
)
class ReinterpretState(TaskBase):
    """Copies the value of one state entry into another one."""

    source: str | None
    destination: str | None
    source_must_exist: bool
    allow_clear: bool

    async def run(self, state: State, cancellation: CancellationToken | None = None) -> None:
        value = state[self.source]
        if value is not None:
            logger.info(f"Copying state from '{self.source}' to '{self.destination}'")
            state[self.destination] = value
            return

        if self.source_must_exist:
            raise LookupError(f"State '{self.source}' holds no value")

        if self.allow_clear:
            logger.info(f"Clearing state '{self.destination}'")
            state.clear(self.destination)


_TRANSITIONS = {
    Phase.PREINSTALLED_ENVIRONMENT: Phase.BOOTSTRAPPING,
    Phase.BOOTSTRAPPING: Phase.INSTALLATION,
    Phase.INSTALLATION: Phase.POST_INSTALLATION,
}


@task("advance-phase")
class AdvancePhase(TaskBase):
    """Moves the state on to the next deployment phase."""

    async def run(self, state: State, cancellation: CancellationToken | None = None) -> None:
        current = state.phase
        following = _TRANSITIONS.get(current)
        if following is None:
            logger.warning(f"There is no transition from phase {current} to another one")
            return

        logger.info(f"Advancing from phase {current} to {following}")
        state.phase = following
