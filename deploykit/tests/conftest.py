"""Shared fixtures."""

import pytest

from deploykit.state import Phase, State
from deploykit.tasks import TaskRegistry
from deploykit.workflow import TaskSequenceFactory

from .test_utils import define_test_tasks


@pytest.fixture
def registry():
    """An empty task registry isolated from the process-wide one."""
    return TaskRegistry()


@pytest.fixture
def tasks(registry):
    """Test task types registered with the isolated registry."""
    return define_test_tasks(registry)


@pytest.fixture
def factory(registry, tasks):
    """A factory resolving task types through the isolated registry."""
    return TaskSequenceFactory(registry=registry)


@pytest.fixture
def state():
    """A fresh state in the installation phase."""
    result = State()
    result.phase = Phase.INSTALLATION
    return result
