"""Task sequences: building, describing, storing and executing them."""

from .builder import TaskSequenceBuilder
from .descriptions import TaskDescription, TaskDescriptionFactory
from .factory import TaskSequenceFactory
from .sequence import SequenceResult, SequenceStatus, TaskOutcome, TaskOutcomeStatus, TaskSequence
from .sequence_description import TaskSequenceDescription, TaskSequenceDescriptionBuilder
from .steps import SelfConfiguringTask, SequenceStep, TaskResolver, default_resolver, inner_task
from .store import TaskSequenceStore

__all__ = [
    "SelfConfiguringTask",
    "SequenceResult",
    "SequenceStatus",
    "SequenceStep",
    "TaskDescription",
    "TaskDescriptionFactory",
    "TaskOutcome",
    "TaskOutcomeStatus",
    "TaskResolver",
    "TaskSequence",
    "TaskSequenceBuilder",
    "TaskSequenceDescription",
    "TaskSequenceDescriptionBuilder",
    "TaskSequenceFactory",
    "TaskSequenceStore",
    "default_resolver",
    "inner_task",
]
