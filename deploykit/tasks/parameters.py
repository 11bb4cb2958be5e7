"""Declarative descriptions of task parameters.

Each task type registers a table of ParameterDescription objects. The table
drives required-ness checks, value resolution from the state and the
environment, and the (de)serialisation of parameters in sequence files.
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Literal

from pydantic import Field, TypeAdapter

from deploykit.core.models import StrictBaseModel


class _Unset:
    """Marker for parameters without a declared default."""

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class ParameterSourceType(str, Enum):
    """Where the value of a parameter can come from."""

    DEFAULT = "Default"
    STATE = "State"
    ENVIRONMENT = "Environment"


class ParameterSource(StrictBaseModel):
    """One possible origin of a parameter value.

    For DEFAULT the source is the value itself, for STATE the state key and
    for ENVIRONMENT the name of the environment variable.
    """

    type: ParameterSourceType = Field(..., description="Kind of source")
    source: Any = Field(default=None, description="Value, state key or variable name")


@dataclass(frozen=True)
class ParameterDescription:
    """Metadata of a single task parameter.

    Attributes:
        name: Attribute name on the task
        required: The parameter must hold a value when the task runs
        default: Initial value of the parameter on a new task
        from_state: State keys to read the value from, in order
        from_environment: Environment variables to read the value from, in order
        expand_environment: Expand variables in values read from the environment
        must_exist: The value names a file or directory that must exist
        type: Type values are converted to; None keeps values as they are
        description: Human-readable explanation
    """

    name: str
    required: bool = False
    default: Any = UNSET
    from_state: tuple[str, ...] = ()
    from_environment: tuple[str, ...] = ()
    expand_environment: bool = True
    must_exist: Literal["file", "directory"] | None = None
    type: Any = None
    description: str = field(default="", compare=False)

    @property
    def is_required(self) -> bool:
        return self.required or self.must_exist is not None

    @property
    def has_default(self) -> bool:
        return self.default is not UNSET

    @property
    def sources(self) -> list[ParameterSource]:
        """All declared sources: the default first, then state keys, then
        environment variables."""
        sources: list[ParameterSource] = []
        if self.has_default:
            sources.append(ParameterSource(type=ParameterSourceType.DEFAULT, source=self.default))
        sources.extend(ParameterSource(type=ParameterSourceType.STATE, source=key) for key in self.from_state)
        sources.extend(
            ParameterSource(type=ParameterSourceType.ENVIRONMENT, source=variable)
            for variable in self.from_environment
        )
        return sources

    @property
    def initial_value(self) -> Any:
        """Value a freshly created task holds for this parameter."""
        return self.default if self.has_default else None

    @cached_property
    def _adapter(self) -> TypeAdapter | None:
        return TypeAdapter(self.type) if self.type is not None else None

    def coerce(self, value: Any) -> Any:
        """Convert ``value`` (e.g. from JSON) to the declared type.

        Raises:
            pydantic.ValidationError: If the value cannot be converted
        """
        if value is None or self._adapter is None:
            return value
        return self._adapter.validate_python(value)

    def dump(self, value: Any) -> Any:
        """Convert ``value`` to its JSON-compatible form."""
        if value is None or self._adapter is None:
            return value
        return self._adapter.dump_python(value, mode="json")


BASE_PARAMETERS: tuple[ParameterDescription, ...] = (
    ParameterDescription(name="name", type=str, description="Name of the task used in log output"),
    ParameterDescription(
        name="is_critical",
        default=True,
        type=bool,
        description="Whether a failure of the task aborts the task sequence",
    ),
)
"""Parameters every task has."""
