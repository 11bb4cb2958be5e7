"""Tests for the task sequence factory."""

import json

import pytest

from deploykit.state import Phase, State
from deploykit.workflow import TaskSequenceBuilder, TaskSequenceFactory, TaskSequenceStore


@pytest.fixture
def sequence_file(tmp_path):
    path = tmp_path / "foo.json"
    path.write_text(
        json.dumps(
            {
                "ID": "abc123",
                "Name": "Recording",
                "Phase": "Installation",
                "Tasks": [
                    {"Task": "record", "Parameters": {"label": "first"}},
                    {"Task": "record", "Parameters": {"label": "second"}},
                ],
            }
        )
    )
    return path


class TestTaskSequenceFactory:
    """Test builder creation and sequence loading."""

    def test_fresh_builders(self, factory):
        first = factory.create_builder()
        second = factory.create_builder()

        first.for_phase(Phase.INSTALLATION)

        assert isinstance(first, TaskSequenceBuilder)
        assert first is not second
        assert second.phase is None

    def test_description_builder_uses_registry(self, factory):
        description = factory.create_description_builder().for_phase(Phase.INSTALLATION).add("record").build()

        assert description.tasks[0].task == "record"

    @pytest.mark.asyncio
    async def test_load_description(self, factory, sequence_file):
        description = await factory.load_description(sequence_file)

        assert description.name == "Recording"

    @pytest.mark.asyncio
    async def test_load_from_path_without_store(self, factory, sequence_file):
        sequence = await factory.load_task_sequence(str(sequence_file))
        state = State()

        result = await sequence.execute(state)

        assert result.succeeded
        assert state["Log"] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_load_from_store_by_id(self, registry, tasks, sequence_file):
        factory = TaskSequenceFactory(store=TaskSequenceStore(path=sequence_file.parent), registry=registry)

        sequence = await factory.load_task_sequence("ABC123")

        assert factory.store is not None
        assert sequence.phase is Phase.INSTALLATION
        assert [t.label for t in sequence.tasks] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_unknown_key_in_store(self, registry, tasks, tmp_path):
        factory = TaskSequenceFactory(store=TaskSequenceStore(path=tmp_path), registry=registry)

        assert await factory.load_task_sequence("missing") is None

    @pytest.mark.asyncio
    async def test_uses_resolver(self, registry, tasks, sequence_file):
        created = []

        def resolver(task_class):
            created.append(task_class())
            return created[-1]

        factory = TaskSequenceFactory(resolver=resolver, registry=registry)
        sequence = await factory.load_task_sequence(str(sequence_file))

        assert list(sequence.tasks) == created
