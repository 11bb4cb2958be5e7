"""Tests for options mirrored into the state."""

from typing import Annotated

import pytest

from deploykit.core.errors import ValidationError
from deploykit.state import State, StateKey, StateOptions, WellKnownStates


class ShareOptions(StateOptions):
    """Options of a front end connecting to the deployment share."""

    share: Annotated[str | None, StateKey(WellKnownStates.DEPLOYMENT_SHARE, required=True)] = None
    user: Annotated[str | None, StateKey(WellKnownStates.DEPLOYMENT_SHARE_USER)] = None
    mount_point: Annotated[str | None, StateKey("MountPoint")] = None
    verbose: bool = False


class TestStateOptions:
    """Test pushing options to and pulling them from the state."""

    def test_bindings_are_collected_once_per_class(self):
        assert set(ShareOptions.__state_keys__) == {"share", "user", "mount_point"}
        assert ShareOptions.__state_keys__["share"].required is True
        assert StateOptions.__state_keys__ == {}

    def test_push(self):
        state = State()
        ShareOptions(share=r"\\server\share", mount_point="Z:").push(state)

        assert state.deployment_share == r"\\server\share"
        assert state["MountPoint"] == "Z:"
        assert state.deployment_share_user is None

    def test_pull_fills_unset_fields(self):
        state = State({WellKnownStates.DEPLOYMENT_SHARE: "from-state", WellKnownStates.DEPLOYMENT_SHARE_USER: "admin"})
        options = ShareOptions(share="explicit")

        options.pull(state)

        assert options.share == "explicit"
        assert options.user == "admin"

    def test_pull_force_overwrites(self):
        state = State({WellKnownStates.DEPLOYMENT_SHARE: "from-state"})
        options = ShareOptions(share="explicit")

        options.pull(state, force=True)

        assert options.share == "from-state"

    def test_pull_required_missing(self):
        with pytest.raises(ValidationError) as exc_info:
            ShareOptions().pull(State())

        assert [e.location for e in exc_info.value.validation_errors] == ["share"]
