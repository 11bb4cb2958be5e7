"""Tests for the phase-locked task sequence builder."""

import pytest

from deploykit.core.errors import ConfigurationError, IncompatibleTaskError
from deploykit.state import Phase
from deploykit.workflow import (
    SelfConfiguringTask,
    TaskSequenceBuilder,
    TaskSequenceDescription,
    TaskDescription,
)


@pytest.fixture
def builder(registry, tasks):
    return TaskSequenceBuilder(registry=registry)


def named(task_class, name):
    instance = task_class()
    instance.name = name
    return instance


class TestPhase:
    """Test the phase contract of the builder."""

    def test_for_phase_twice_raises(self, builder):
        builder.for_phase(Phase.INSTALLATION)

        with pytest.raises(ConfigurationError):
            builder.for_phase(Phase.INSTALLATION)
        with pytest.raises(ConfigurationError):
            builder.for_phase(Phase.BOOTSTRAPPING)

    def test_for_phase_accepts_labels(self, builder):
        builder.for_phase("post-installation")

        assert builder.phase is Phase.POST_INSTALLATION

    def test_add_before_phase_raises(self, builder, tasks):
        with pytest.raises(ConfigurationError):
            builder.add(tasks.record())
        with pytest.raises(ConfigurationError):
            builder.insert(0, tasks.record())

    def test_build_without_phase_raises(self, builder):
        with pytest.raises(ConfigurationError):
            builder.build()

    @pytest.mark.parametrize("phase", list(Phase))
    def test_add_accepts_exactly_the_supported_phases(self, registry, tasks, phase):
        builder = TaskSequenceBuilder(registry=registry).for_phase(phase)
        task = tasks.installation_only()

        if task.can_execute(phase):
            builder.add(task)
            assert len(builder) == 1
        else:
            with pytest.raises(IncompatibleTaskError) as exc_info:
                builder.add(task)
            assert exc_info.value.phase_context.supported_phases == ["Installation"]
            assert len(builder) == 0

    def test_incompatible_self_configuring_step(self, builder, tasks):
        builder.for_phase(Phase.BOOTSTRAPPING)

        with pytest.raises(IncompatibleTaskError):
            builder.add(SelfConfiguringTask(tasks.installation_only(), lambda task, state: None))

    def test_empty_sequence(self, builder):
        sequence = builder.for_phase(Phase.BOOTSTRAPPING).build()

        assert sequence.phase is Phase.BOOTSTRAPPING
        assert len(sequence) == 0


class TestOrdering:
    """Test add and insert ordering."""

    def test_insert_keeps_relative_order(self, builder, tasks):
        builder.for_phase(Phase.INSTALLATION)
        builder.add(named(tasks.record, "A")).add(named(tasks.record, "B"))
        builder.insert(1, named(tasks.record, "X"))

        assert [t.name for t in builder.build()] == ["A", "X", "B"]

    def test_insert_at_both_ends(self, builder, tasks):
        builder.for_phase(Phase.INSTALLATION).add(named(tasks.record, "B"))
        builder.insert(0, named(tasks.record, "A"))
        builder.insert(2, named(tasks.record, "C"))

        assert [t.name for t in builder.build()] == ["A", "B", "C"]

    @pytest.mark.parametrize("index", [-1, 2])
    def test_insert_out_of_range(self, builder, tasks, index):
        builder.for_phase(Phase.INSTALLATION).add(tasks.record())

        with pytest.raises(IndexError):
            builder.insert(index, tasks.record())

    def test_build_is_a_snapshot(self, builder, tasks):
        builder.for_phase(Phase.INSTALLATION).add(tasks.record())
        sequence = builder.build()
        builder.add(tasks.record())

        assert len(sequence) == 1
        assert len(builder.build()) == 2


class TestTaskCreation:
    """Test resolver-backed creation of tasks."""

    def test_add_task_configures_immediately(self, builder, tasks):
        builder.for_phase(Phase.INSTALLATION)

        def configure(task):
            task.label = "configured"

        builder.add_task(tasks.record, configure)
        (task,) = builder.build().tasks

        assert isinstance(task, tasks.record)
        assert task.label == "configured"

    def test_add_self_configuring_defers_configuration(self, builder, tasks):
        calls = []
        builder.for_phase(Phase.INSTALLATION)
        builder.add_self_configuring(tasks.record, lambda task, state: calls.append(task))

        (step,) = builder.build().steps

        assert isinstance(step, SelfConfiguringTask)
        assert isinstance(step.task, tasks.record)
        assert calls == []

    def test_custom_resolver(self, registry, tasks):
        created = []

        def resolver(task_class):
            task = task_class()
            task.name = "from resolver"
            created.append(task)
            return task

        builder = TaskSequenceBuilder(resolver=resolver, registry=registry).for_phase(Phase.INSTALLATION)
        builder.add_task(tasks.record)

        assert builder.build().tasks[0] is created[0]
        assert created[0].name == "from resolver"

    def test_from_description(self, builder, tasks):
        description = TaskSequenceDescription(
            phase=Phase.INSTALLATION,
            tasks=[
                TaskDescription(task="record", parameters={"label": "first"}),
                TaskDescription(task="installation-only"),
            ],
        )

        sequence = builder.from_description(description).build()

        assert sequence.phase is Phase.INSTALLATION
        assert isinstance(sequence.tasks[0], tasks.record)
        assert sequence.tasks[0].label == "first"
        assert isinstance(sequence.tasks[1], tasks.installation_only)

    def test_from_description_sets_the_phase(self, builder):
        builder.from_description(TaskSequenceDescription(phase=Phase.BOOTSTRAPPING))

        with pytest.raises(ConfigurationError):
            builder.for_phase(Phase.BOOTSTRAPPING)

    def test_from_description_rejects_incompatible_tasks(self, builder):
        description = TaskSequenceDescription(
            phase=Phase.BOOTSTRAPPING, tasks=[TaskDescription(task="installation-only")]
        )

        with pytest.raises(IncompatibleTaskError):
            builder.from_description(description)
