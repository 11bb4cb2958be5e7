"""Composition root tying task resolution, registry and store together."""

import logging
from pathlib import Path

from deploykit.core.errors import ErrorManager
from deploykit.tasks import TaskRegistry, task_registry

from .builder import TaskSequenceBuilder
from .sequence import TaskSequence
from .sequence_description import TaskSequenceDescription, TaskSequenceDescriptionBuilder
from .steps import TaskResolver, default_resolver
from .store import TaskSequenceStore

logger = logging.getLogger(__name__)


class TaskSequenceFactory:
    """Creates builders and loads task sequences."""

    def __init__(
        self,
        resolver: TaskResolver | None = None,
        store: TaskSequenceStore | None = None,
        registry: TaskRegistry | None = None,
        error_manager: ErrorManager | None = None,
    ):
        self._resolver = resolver or default_resolver
        self._store = store
        self._registry = registry or task_registry
        self._error_manager = error_manager

    @property
    def store(self) -> TaskSequenceStore | None:
        return self._store

    def create_builder(self) -> TaskSequenceBuilder:
        """A fresh builder on every call."""
        return TaskSequenceBuilder(self._resolver, self._registry, self._error_manager)

    def create_description_builder(self) -> TaskSequenceDescriptionBuilder:
        return TaskSequenceDescriptionBuilder(self._registry)

    async def load_description(self, path: str | Path) -> TaskSequenceDescription:
        return await TaskSequenceDescription.parse(path)

    async def load_task_sequence(self, key: str) -> TaskSequence | None:
        """Build the live sequence identified by ``key``.

        With a store, ``key`` is a path or an ID in the store; without one it
        must be the path of a sequence file.

        Returns:
            The sequence, or None if the store does not know ``key``
        """
        if self._store is not None:
            description = await self._store.get_task_sequence(key)
            if description is None:
                return None
        else:
            description = await self.load_description(key)

        logger.info(f"Building task sequence '{description.name}' for phase {description.phase}")
        return self.create_builder().from_description(description).build()
