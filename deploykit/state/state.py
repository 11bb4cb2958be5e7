"""The shared state bag passed between tasks and deployment stages.

A State holds a typed record of the well-known entries plus a side map for
task-private entries. It can be checkpointed to a JSON file and restored by
the process running the next deployment stage.
"""

import asyncio
import json
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from deploykit.core.errors import (
    ConfigurationError,
    ConfigurationErrorContext,
    ErrorContext,
    FileErrorContext,
    MalformedStateError,
    StateError,
    StateErrorContext,
)

from .phase import Phase, PhaseField
from .well_known import WellKnownStates

logger = logging.getLogger(__name__)

_MASK = "***"


class WellKnownValues(BaseModel):
    """Typed record of the well-known state entries."""

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
        extra="forbid",
    )

    agent_path: str | None = Field(default=None, alias=WellKnownStates.AGENT_PATH)
    architecture: str | None = Field(default=None, alias=WellKnownStates.ARCHITECTURE)
    boot_drive: str | None = Field(default=None, alias=WellKnownStates.BOOT_DRIVE)
    bootstrapper_path: str | None = Field(default=None, alias=WellKnownStates.BOOTSTRAPPER_PATH)
    deployment_directory: str | None = Field(default=None, alias=WellKnownStates.DEPLOYMENT_DIRECTORY)
    deployment_share: str | None = Field(default=None, alias=WellKnownStates.DEPLOYMENT_SHARE)
    deployment_share_domain: str | None = Field(default=None, alias=WellKnownStates.DEPLOYMENT_SHARE_DOMAIN)
    deployment_share_password: str | None = Field(default=None, alias=WellKnownStates.DEPLOYMENT_SHARE_PASSWORD)
    deployment_share_user: str | None = Field(default=None, alias=WellKnownStates.DEPLOYMENT_SHARE_USER)
    installation_directory: str | None = Field(default=None, alias=WellKnownStates.INSTALLATION_DIRECTORY)
    installation_disk: str | int | None = Field(default=None, alias=WellKnownStates.INSTALLATION_DISK)
    installation_image: str | None = Field(default=None, alias=WellKnownStates.INSTALLATION_IMAGE)
    installation_image_index: int | None = Field(default=None, alias=WellKnownStates.INSTALLATION_IMAGE_INDEX)
    phase: PhaseField = Field(default=Phase.UNKNOWN, alias=WellKnownStates.PHASE)
    progress: int = Field(default=0, ge=0, alias=WellKnownStates.PROGRESS)
    session_key: str | None = Field(default=None, alias=WellKnownStates.SESSION_KEY)
    state_file: str | None = Field(default=None, alias=WellKnownStates.STATE_FILE)
    task_sequence: Any = Field(default=None, alias=WellKnownStates.TASK_SEQUENCE)
    working_directory: str | None = Field(default=None, alias=WellKnownStates.WORKING_DIRECTORY)

    @field_validator("task_sequence")
    @classmethod
    def validate_task_sequence(cls, v: Any) -> Any:
        """Only the ID or path of a sequence, or a live sequence, is allowed."""
        if v is None or isinstance(v, str) or callable(getattr(v, "execute", None)):
            return v
        raise ValueError("TaskSequence must be a sequence ID, a path or a live task sequence")


# Maps both the checkpoint name and the attribute name to the field.
_FIELDS: dict[str, str] = {}
for _name, _info in WellKnownValues.model_fields.items():
    _FIELDS[_info.alias or _name] = _name
    _FIELDS[_name] = _name
_LABELS: dict[str, str] = {
    name: info.alias or name for name, info in WellKnownValues.model_fields.items()
}
del _name, _info


def _well_known(key: str) -> property:
    field = _FIELDS[key]

    def getter(self: "State") -> Any:
        return getattr(self._known, field)

    def setter(self: "State", value: Any) -> None:
        self[key] = value

    return property(getter, setter, doc=f"The '{key}' state entry.")


class State:
    """Mutable key/value bag shared by all tasks of a run.

    Well-known keys may be given by their checkpoint name ("DeploymentShare")
    or their attribute name ("deployment_share"); any other key is stored
    as is. Reading a key that holds no value returns None.
    """

    def __init__(self, values: Mapping[str, Any] | None = None):
        self._known = WellKnownValues()
        self._extra: dict[str, Any] = {}
        if values:
            for key, value in values.items():
                self[key] = value

    agent_path = _well_known(WellKnownStates.AGENT_PATH)
    architecture = _well_known(WellKnownStates.ARCHITECTURE)
    boot_drive = _well_known(WellKnownStates.BOOT_DRIVE)
    bootstrapper_path = _well_known(WellKnownStates.BOOTSTRAPPER_PATH)
    deployment_directory = _well_known(WellKnownStates.DEPLOYMENT_DIRECTORY)
    deployment_share = _well_known(WellKnownStates.DEPLOYMENT_SHARE)
    deployment_share_domain = _well_known(WellKnownStates.DEPLOYMENT_SHARE_DOMAIN)
    deployment_share_password = _well_known(WellKnownStates.DEPLOYMENT_SHARE_PASSWORD)
    deployment_share_user = _well_known(WellKnownStates.DEPLOYMENT_SHARE_USER)
    installation_directory = _well_known(WellKnownStates.INSTALLATION_DIRECTORY)
    installation_disk = _well_known(WellKnownStates.INSTALLATION_DISK)
    installation_image = _well_known(WellKnownStates.INSTALLATION_IMAGE)
    installation_image_index = _well_known(WellKnownStates.INSTALLATION_IMAGE_INDEX)
    phase = _well_known(WellKnownStates.PHASE)
    progress = _well_known(WellKnownStates.PROGRESS)
    session_key = _well_known(WellKnownStates.SESSION_KEY)
    state_file = _well_known(WellKnownStates.STATE_FILE)
    task_sequence = _well_known(WellKnownStates.TASK_SEQUENCE)
    working_directory = _well_known(WellKnownStates.WORKING_DIRECTORY)

    @property
    def installation_drive(self) -> str | None:
        """Root of the installation directory, if one is known."""
        directory = self.installation_directory
        if not directory:
            return None
        return Path(directory).anchor or None

    def __getitem__(self, key: str) -> Any:
        field = _FIELDS.get(key)
        if field is not None:
            return getattr(self._known, field)
        return self._extra.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        field = _FIELDS.get(key)
        if field is None:
            if value is None:
                self._extra.pop(key, None)
            else:
                self._extra[key] = value
            self._log_change(key, value)
            return

        label = _LABELS[field]
        if field == "session_key":
            current = self._known.session_key
            if current is not None and value is not None and value != current:
                raise StateError(
                    message="The session key cannot be changed once it has been set",
                    context=ErrorContext.create(
                        error_type="StateError",
                        error_location="State.__setitem__",
                        component="State",
                        operation="set",
                    ),
                    state_context=StateErrorContext(key=label, operation="set"),
                )

        if value is None:
            value = WellKnownValues.model_fields[field].get_default(call_default_factory=True)
        setattr(self._known, field, value)
        self._log_change(label, getattr(self._known, field))

    def get(self, key: str, default: Any = None) -> Any:
        """Get the value of ``key`` or ``default`` if it holds no value."""
        value = self[key]
        return default if value is None else value

    def clear(self, key: str) -> bool:
        """Reset ``key`` to its empty value.

        Returns:
            True if the key held a value before, False otherwise
        """
        field = _FIELDS.get(key)
        if field is None:
            if key not in self._extra:
                return False
            del self._extra[key]
            logger.debug(f"State '{key}' was cleared")
            return True

        info = WellKnownValues.model_fields[field]
        default = info.get_default(call_default_factory=True)
        had_value = getattr(self._known, field) is not None
        # Clearing is the only way to reset the session key.
        self._known = self._known.model_copy(update={field: default})
        logger.debug(f"State '{_LABELS[field]}' was cleared")
        return had_value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self[key] is not None

    def __iter__(self) -> Iterator[str]:
        for field, label in _LABELS.items():
            if getattr(self._known, field) is not None:
                yield label
        yield from self._extra

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        entries = ", ".join(f"{key}={self._display(key, self[key])}" for key in self)
        return f"State({entries})"

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible snapshot of all entries holding a value.

        A live task sequence is not persisted; ad hoc entries that cannot be
        represented in JSON are skipped with a warning.
        """
        result: dict[str, Any] = self._known.model_dump(
            mode="json", by_alias=True, exclude_none=True, exclude={"task_sequence"}
        )
        if isinstance(self._known.task_sequence, str):
            result[WellKnownStates.TASK_SEQUENCE] = self._known.task_sequence

        for key, value in self._extra.items():
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                logger.warning(f"State '{key}' cannot be persisted and is skipped")
                continue
            result[key] = value

        return result

    async def save(self, path: str | Path | None = None) -> Path:
        """Write a checkpoint of the state.

        Args:
            path: Target file; defaults to the current ``state_file``

        Returns:
            The path the state was written to, which is also recorded as the
            new ``state_file``
        """
        target = self._resolve_path(path, "save")
        data = self.to_dict()
        data[WellKnownStates.STATE_FILE] = str(target)

        def write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)

        await asyncio.to_thread(write)
        self.state_file = str(target)
        logger.info(f"State saved to {target}")
        return target

    async def load(self, path: str | Path | None = None) -> None:
        """Replace the contents of the state with a checkpoint.

        Args:
            path: Source file; defaults to the current ``state_file``

        Raises:
            MalformedStateError: If the file is not a valid checkpoint
        """
        source = self._resolve_path(path, "load")
        raw = await asyncio.to_thread(source.read_bytes)

        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise self._malformed(source, f"State file '{source}' is not valid JSON", e) from e

        if not isinstance(data, dict):
            raise self._malformed(source, f"State file '{source}' does not contain a JSON object")

        known = {k: v for k, v in data.items() if k in _FIELDS}
        try:
            values = WellKnownValues.model_validate(known)
        except PydanticValidationError as e:
            raise self._malformed(source, f"State file '{source}' contains invalid values", e) from e

        self._known = values
        self._extra = {k: v for k, v in data.items() if k not in _FIELDS and v is not None}
        self._known.state_file = str(source)
        logger.info(f"State restored from {source}")

    @classmethod
    async def restore(cls, path: str | Path) -> "State":
        """Create a state from a checkpoint file."""
        state = cls()
        await state.load(path)
        return state

    def _resolve_path(self, path: str | Path | None, operation: str) -> Path:
        if path is not None:
            return Path(path)
        if self.state_file:
            return Path(self.state_file)
        raise ConfigurationError(
            message=f"Cannot {operation} the state without a path or a state file",
            context=ErrorContext.create(
                error_type="ConfigurationError",
                error_location=f"State.{operation}",
                component="State",
                operation=operation,
            ),
            config_context=ConfigurationErrorContext(
                config_key=WellKnownStates.STATE_FILE,
                config_section="state",
                expected_type="path",
                actual_value="None",
            ),
        )

    @staticmethod
    def _malformed(path: Path, message: str, cause: Exception | None = None) -> MalformedStateError:
        return MalformedStateError(
            message=message,
            context=ErrorContext.create(
                error_type="MalformedStateError",
                error_location="State.load",
                component="State",
                operation="load",
            ),
            file_context=FileErrorContext(path=str(path), operation="parse"),
            cause=cause,
        )

    @staticmethod
    def _display(key: str, value: Any) -> str:
        if key in WellKnownStates.SENSITIVE and value is not None:
            return _MASK
        return repr(value)

    def _log_change(self, key: str, value: Any) -> None:
        logger.debug(f"State '{key}' set to {self._display(key, value)}")
