"""Built-in task modifying the process environment."""

import logging
import os

from deploykit.core.cancellation import CancellationToken
from deploykit.state import State

from ..base import TaskBase
from ..decorators import task
from ..parameters import ParameterDescription

logger = logging.getLogger(__name__)


@task(
    "set-environment-variable",
    parameters=[
        ParameterDescription(name="variable", required=True, type=str, description="Name of the variable"),
        ParameterDescription(name="value", type=str, description="New value; none removes the variable"),
        ParameterDescription(
            name="no_overwrite",
            default=False,
            type=bool,
            description="Leave the variable alone if it already exists",
        ),
    ],
)
class SetEnvironmentVariable(TaskBase):
    """Sets or removes an environment variable of the running process."""

    variable: str | None
    value: str | None
    no_overwrite: bool

    async def run(self, state: State, cancellation: CancellationToken | None = None) -> None:
        exists = self.variable in os.environ
        if self.no_overwrite and exists:
            logger.info(f"Leaving environment variable '{self.variable}' untouched because it already exists")
            return

        if self.value is None:
            logger.info(f"Removing environment variable '{self.variable}'")
            os.environ.pop(self.variable, None)
        else:
            logger.info(f"Setting environment variable '{self.variable}' to '{self.value}'")
            os.environ[self.variable] = self.value
