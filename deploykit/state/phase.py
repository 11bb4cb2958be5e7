"""Deployment pipeline phases."""

from enum import IntEnum
from typing import Annotated, Any

from pydantic import PlainSerializer, PlainValidator


class Phase(IntEnum):
    """Stages of the deployment pipeline.

    Values leave gaps so further stages can be inserted without renumbering
    persisted checkpoints.
    """

    UNKNOWN = 0
    PREINSTALLED_ENVIRONMENT = 10
    BOOTSTRAPPING = 20
    INSTALLATION = 30
    POST_INSTALLATION = 40

    @property
    def label(self) -> str:
        """PascalCase name used in sequence and state files."""
        return "".join(part.capitalize() for part in self.name.split("_"))

    @classmethod
    def parse(cls, value: Any) -> "Phase":
        """Convert a phase, its value, its label or its member name.

        Names are compared case-insensitively, ignoring underscores, hyphens
        and blanks, so "PostInstallation", "post_installation" and
        "post-installation" all denote the same phase.

        Raises:
            ValueError: If the value does not denote a phase
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str):
            normalised = "".join(c for c in value if c not in "_- ").lower()
            for phase in cls:
                if phase.name.replace("_", "").lower() == normalised:
                    return phase
            if normalised.isdigit():
                return cls(int(normalised))
        raise ValueError(f"'{value}' is not a valid phase")

    def __str__(self) -> str:
        return self.label


PhaseField = Annotated[
    Phase,
    PlainValidator(Phase.parse),
    PlainSerializer(lambda phase: phase.label, return_type=str, when_used="json"),
]
"""Phase as a pydantic field: accepts any form `Phase.parse` understands and
serialises to its label in JSON."""
