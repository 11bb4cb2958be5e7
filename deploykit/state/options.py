"""Options objects whose fields mirror state entries.

Front ends describe their options as pydantic models and mark the fields
that correspond to state entries with ``StateKey``::

    class ShareOptions(StateOptions):
        share: Annotated[str | None, StateKey(WellKnownStates.DEPLOYMENT_SHARE, required=True)] = None

The field-to-key table is computed once, when the class is created.
"""

import logging
from dataclasses import dataclass
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict

from deploykit.core.errors import ErrorContext, ValidationError, ValidationErrorDetail

from .state import State

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateKey:
    """Marks an options field as bound to the state entry ``key``."""

    key: str
    required: bool = False


class StateOptions(BaseModel):
    """Base class of options that can be pushed to and pulled from a State."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    __state_keys__: ClassVar[dict[str, StateKey]] = {}

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        cls.__state_keys__ = {
            name: marker
            for name, info in cls.model_fields.items()
            for marker in info.metadata
            if isinstance(marker, StateKey)
        }

    def push(self, state: State) -> None:
        """Write every bound field that holds a value into ``state``."""
        for name, binding in self.__state_keys__.items():
            value = getattr(self, name)
            if value is not None:
                state[binding.key] = value

    def pull(self, state: State, force: bool = False) -> None:
        """Fill bound fields from ``state``.

        Args:
            state: The state to read from
            force: Overwrite fields that already hold a value

        Raises:
            ValidationError: If a required field is still unset afterwards
        """
        for name, binding in self.__state_keys__.items():
            if not force and getattr(self, name) is not None:
                continue
            value = state[binding.key]
            if value is not None:
                setattr(self, name, value)

        missing = [
            name
            for name, binding in self.__state_keys__.items()
            if binding.required and getattr(self, name) is None
        ]
        if missing:
            raise ValidationError(
                message=f"Required options are not set: {', '.join(missing)}",
                validation_errors=[
                    ValidationErrorDetail(
                        location=name,
                        message=f"No value for state entry '{self.__state_keys__[name].key}'",
                        error_type="missing",
                    )
                    for name in missing
                ],
                context=ErrorContext.create(
                    error_type="ValidationError",
                    error_location=f"{type(self).__name__}.pull",
                    component="StateOptions",
                    operation="pull",
                ),
            )
