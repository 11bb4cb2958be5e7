"""Tasks shipped with deploykit.

Importing this package registers them with the process-wide task registry.
"""

from .environment import SetEnvironmentVariable
from .filesystem import CreateDirectory
from .state import AdvancePhase, ClearState, PersistState, ReinterpretState
from .timing import Delay

__all__ = [
    "AdvancePhase",
    "ClearState",
    "CreateDirectory",
    "Delay",
    "PersistState",
    "ReinterpretState",
    "SetEnvironmentVariable",
]
