"""Tests for the task registry."""

import pytest

from deploykit.core.errors import TypeResolutionError
from deploykit.state import Phase
from deploykit.tasks import TaskBase, TaskRegistry, task, task_registry


async def _noop(self, state, cancellation=None):
    return None


def make_task(registry, task_id, class_name, module="tests.tasks"):
    cls = type(class_name, (TaskBase,), {"run": _noop, "__module__": module})
    return task(task_id, registry=registry)(cls)


class TestTaskRegistry:
    """Test registration and lookup."""

    def test_register_and_get(self, registry, tasks):
        registration = registry.get("record")

        assert registration.task_class is tasks.record
        assert registration.task_id == "record"
        assert [p.name for p in registration.parameters] == ["name", "is_critical", "label", "count"]
        assert registry.contains("record")
        assert not registry.contains("missing")

    def test_get_missing(self, registry):
        with pytest.raises(KeyError):
            registry.get("missing")

    def test_get_expected_type(self, registry, tasks):
        with pytest.raises(TypeError):
            registry.get("record", expected_type=tasks.fail)

    def test_list_by_phase(self, registry, tasks):
        assert "installation-only" in registry.list()
        assert "installation-only" not in registry.list({"phase": Phase.POST_INSTALLATION})
        assert "record" in registry.list({"phase": "PostInstallation"})

    def test_duplicate_identifier_for_other_class(self, registry, tasks):
        with pytest.raises(ValueError):
            make_task(registry, "record", "SomethingElse")

    def test_remove_and_clear(self, registry, tasks):
        assert registry.remove("record") is True
        assert registry.remove("record") is False
        with pytest.raises(TypeResolutionError):
            registry.resolve("RecordTask")

        registry.clear()
        assert registry.list() == []

    def test_list_aliases(self, registry, tasks):
        aliases = registry.list_aliases("record")

        assert "RecordTask" in aliases
        assert any(alias.endswith(".RecordTask") for alias in aliases)
        assert registry.list_aliases("missing") == []

    def test_registration_for(self, registry, tasks):
        assert registry.registration_for(tasks.fail).task_id == "fail"
        assert registry.registration_for(TaskBase) is None

    def test_builtins_are_in_process_registry(self):
        import deploykit.tasks.builtin  # noqa: F401

        assert task_registry.contains("persist-state")
        assert task_registry.contains("advance-phase")


class TestResolve:
    """Test the tiered type name lookup."""

    def test_exact_identifier(self, registry, tasks):
        assert registry.resolve("record").task_class is tasks.record

    def test_qualified_class_name(self, registry, tasks):
        qualified = registry.get("record").qualified_name

        assert registry.resolve(qualified).task_class is tasks.record

    def test_short_class_name(self, registry, tasks):
        assert registry.resolve("FailingTask").task_class is tasks.fail

    def test_case_insensitive_fallback(self, registry, tasks):
        assert registry.resolve("RECORD").task_class is tasks.record
        assert registry.resolve("failingtask").task_class is tasks.fail

    def test_ambiguous_short_name(self):
        registry = TaskRegistry()
        make_task(registry, "copy-a", "CopyFiles", module="vendor_a")
        make_task(registry, "copy-b", "CopyFiles", module="vendor_b")

        with pytest.raises(TypeResolutionError) as exc_info:
            registry.resolve("CopyFiles")

        assert exc_info.value.resolution_context.candidates == ["copy-a", "copy-b"]
        assert registry.resolve("vendor_a.CopyFiles").task_id == "copy-a"

    def test_ambiguous_case_insensitive(self):
        registry = TaskRegistry()
        make_task(registry, "Format", "FormatDisk")
        make_task(registry, "format", "FormatVolume")

        with pytest.raises(TypeResolutionError):
            registry.resolve("FORMAT")
        assert registry.resolve("format").task_id == "format"

    def test_unknown(self, registry, tasks):
        with pytest.raises(TypeResolutionError) as exc_info:
            registry.resolve("partition-disk")

        assert exc_info.value.resolution_context.candidates == []
