"""Directory-backed catalog of task sequence files."""

import asyncio
import logging
from pathlib import Path
from typing import Any

from deploykit.core.errors import (
    ConfigurationError,
    ConfigurationErrorContext,
    ErrorContext,
    MalformedDescriptionError,
)
from deploykit.core.settings import TaskSequenceStoreOptions

from .sequence_description import TaskSequenceDescription

logger = logging.getLogger(__name__)


class TaskSequenceStore:
    """Catalog over the sequence files in a directory.

    Nothing is cached: every call scans and parses the directory again, so
    the store is safe to use from concurrent callers.
    """

    def __init__(self, options: TaskSequenceStoreOptions | None = None, **overrides: Any):
        """Open the store.

        Args:
            options: Store options; keyword arguments override single fields

        Raises:
            ConfigurationError: If the directory does not exist
        """
        options = options or TaskSequenceStoreOptions()
        if overrides:
            options = options.model_copy(update=overrides)
        self._options = options

        if options.path is None or not Path(options.path).is_dir():
            raise ConfigurationError(
                message=f"The task sequence store directory '{options.path}' does not exist",
                context=ErrorContext.create(
                    error_type="ConfigurationError",
                    error_location="TaskSequenceStore.__init__",
                    component="TaskSequenceStore",
                    operation="open",
                ),
                config_context=ConfigurationErrorContext(
                    config_key="path",
                    config_section="store",
                    expected_type="existing directory",
                    actual_value=str(options.path),
                ),
            )
        self._root = Path(options.path)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def options(self) -> TaskSequenceStoreOptions:
        return self._options

    def _files(self) -> list[Path]:
        pattern = self._options.filter
        candidates = self._root.rglob(pattern) if self._options.recursive else self._root.glob(pattern)
        return sorted(p for p in candidates if p.is_file())

    async def get_task_sequences(self) -> list[TaskSequenceDescription]:
        """Parse every sequence file in the store.

        Files that cannot be read or parsed are logged and skipped.
        """
        files = await asyncio.to_thread(self._files)
        result: list[TaskSequenceDescription] = []
        for path in files:
            try:
                result.append(await TaskSequenceDescription.parse(path))
            except (MalformedDescriptionError, OSError, ValueError) as e:
                logger.warning(f"Skipping task sequence file '{path}': {e}")
        logger.debug(f"Found {len(result)} task sequences in {self._root}")
        return result

    async def get_task_sequence(self, key: str | None) -> TaskSequenceDescription | None:
        """Find a task sequence by file path or by ID.

        A key naming an existing file (absolute, or relative to the store
        directory) is parsed directly. Otherwise the first sequence whose
        ID matches the key is returned.

        Raises:
            MalformedDescriptionError: If the file named by ``key`` is malformed
        """
        if key is None:
            return None

        candidate = Path(key)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        if await asyncio.to_thread(candidate.is_file):
            logger.debug(f"Loading task sequence from file {candidate}")
            return await TaskSequenceDescription.parse(candidate)

        for sequence in await self.get_task_sequences():
            if self._matches(sequence.id, key):
                return sequence

        logger.warning(f"Task sequence '{key}' was not found in {self._root}")
        return None

    def _matches(self, id: str, key: str) -> bool:
        if self._options.case_sensitive:
            return id == key
        return id.casefold() == key.casefold()
