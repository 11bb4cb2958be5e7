"""Tests for the abstract registry interface."""

import pytest

from deploykit.core.registry import BaseRegistry
from deploykit.tasks import TaskRegistry


class DictRegistry(BaseRegistry[int]):
    def __init__(self):
        self._items = {}

    def register(self, name, obj, **metadata):
        self._items[name] = obj

    def get(self, name, expected_type=None):
        return self._items[name]

    def contains(self, name):
        return name in self._items

    def list(self, filter_criteria=None):
        return sorted(self._items)

    def clear(self):
        self._items.clear()

    def remove(self, name):
        return self._items.pop(name, None) is not None

    def update(self, name, obj, **metadata):
        existed = name in self._items
        self._items[name] = obj
        return existed


class TestBaseRegistry:
    """Test the shared registry interface."""

    def test_cannot_instantiate_abstract(self):
        with pytest.raises(TypeError):
            BaseRegistry()

    def test_list_method_and_default_aliases(self):
        registry = DictRegistry()
        registry.register("b", 2)
        registry.register("a", 1)

        assert registry.list() == ["a", "b"]
        assert registry.list_aliases("a") == []

    def test_list_annotations_resolve(self):
        assert BaseRegistry.list.__annotations__["return"] == list[str]
        assert BaseRegistry.list_aliases.__annotations__["return"] == list[str]

    def test_task_registry_is_a_registry(self):
        assert issubclass(TaskRegistry, BaseRegistry)
        assert isinstance(TaskRegistry(), BaseRegistry)
