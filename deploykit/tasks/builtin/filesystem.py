"""Built-in file system tasks."""

import asyncio
import logging
import shutil
from pathlib import Path

from deploykit.core.cancellation import CancellationToken
from deploykit.state import State

from ..base import TaskBase
from ..decorators import task
from ..parameters import ParameterDescription

logger = logging.getLogger(__name__)


def _clean(directory: Path) -> None:
    for child in directory.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


@task(
    "create-directory",
    parameters=[
        ParameterDescription(name="path", required=True, type=str, description="Directory to create"),
        ParameterDescription(name="clean", default=False, type=bool, description="Empty the directory"),
        ParameterDescription(
            name="must_not_exist",
            default=False,
            type=bool,
            description="Fail if the directory already exists",
        ),
        ParameterDescription(name="state", type=str, description="State entry receiving the absolute path"),
    ],
)
class CreateDirectory(TaskBase):
    """Creates a directory including missing parents."""

    path: str | None
    clean: bool
    must_not_exist: bool
    state: str | None

    async def run(self, state: State, cancellation: CancellationToken | None = None) -> None:
        directory = Path(self.path).absolute()
        if self.must_not_exist and directory.exists():
            raise FileExistsError(f"Directory '{directory}' already exists")

        logger.info(f"Creating a directory at {directory}")
        await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)
        self.path = str(directory)

        if self.clean:
            if cancellation is not None:
                cancellation.raise_if_cancelled(operation=self.name)
            logger.debug(f"Making sure that {directory} is empty")
            await asyncio.to_thread(_clean, directory)

        if self.state:
            logger.debug(f"Storing directory path to state '{self.state}'")
            state[self.state] = self.path
