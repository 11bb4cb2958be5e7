"""Deployment phases and the state shared between tasks."""

from .options import StateKey, StateOptions
from .phase import Phase, PhaseField
from .state import State, WellKnownValues
from .well_known import WellKnownStates

__all__ = [
    "Phase",
    "PhaseField",
    "State",
    "StateKey",
    "StateOptions",
    "WellKnownStates",
    "WellKnownValues",
]
