"""Tests for TaskBase parameter handling and phase gating."""

import pytest

from deploykit.core.cancellation import CancellationToken
from deploykit.core.errors import OperationCancelledError, ValidationError
from deploykit.state import Phase, State
from deploykit.tasks import ParameterDescription, TaskBase, task


@pytest.fixture
def share_task(registry):
    @task(
        "mount-share",
        registry=registry,
        phases=[Phase.BOOTSTRAPPING, "Installation"],
        parameters=[
            ParameterDescription(
                name="share",
                required=True,
                from_state=("DeploymentShare",),
                from_environment=("DEPLOYKIT_TEST_SHARE",),
                type=str,
            ),
            ParameterDescription(name="retries", default=3, type=int),
            ParameterDescription(name="image", must_exist="file", type=str),
        ],
    )
    class MountShare(TaskBase):
        """Mounts the deployment share."""

        async def run(self, state, cancellation=None):
            state["Mounted"] = self.share

    return MountShare


class TestTaskBase:
    """Test construction, parameters and phase checks."""

    def test_initial_values(self, share_task):
        instance = share_task()

        assert instance.name == "MountShare"
        assert instance.is_critical is True
        assert instance.share is None
        assert instance.retries == 3

    def test_can_execute(self, share_task):
        instance = share_task()

        assert instance.can_execute(Phase.BOOTSTRAPPING)
        assert instance.can_execute(Phase.INSTALLATION)
        assert not instance.can_execute(Phase.POST_INSTALLATION)

    def test_no_declared_phases_supports_all(self, tasks):
        instance = tasks.record()

        assert all(instance.can_execute(phase) for phase in Phase)

    def test_unregistered_subclass_supports_all(self):
        class Adhoc(TaskBase):
            async def run(self, state, cancellation=None):
                return None

        instance = Adhoc()

        assert instance.name == "Adhoc"
        assert instance.can_execute(Phase.POST_INSTALLATION)

    def test_parameters_from_state(self, share_task, monkeypatch):
        monkeypatch.setenv("DEPLOYKIT_TEST_SHARE", "from-env")
        instance = share_task()

        instance.apply_parameter_sources(State({"DeploymentShare": "from-state"}))

        assert instance.share == "from-state"

    def test_parameters_from_environment(self, share_task, monkeypatch):
        monkeypatch.setenv("DEPLOYKIT_TEST_ROOT", "/srv")
        monkeypatch.setenv("DEPLOYKIT_TEST_SHARE", "$DEPLOYKIT_TEST_ROOT/share")
        instance = share_task()

        instance.apply_parameter_sources(State())

        assert instance.share == "/srv/share"

    def test_explicit_values_are_kept_unless_forced(self, share_task):
        instance = share_task()
        instance.share = "explicit"
        state = State({"DeploymentShare": "from-state"})

        instance.apply_parameter_sources(state)
        assert instance.share == "explicit"

        instance.apply_parameter_sources(state, force=True)
        assert instance.share == "from-state"

    def test_validate_parameters(self, share_task, tmp_path):
        instance = share_task()
        instance.image = str(tmp_path / "missing.wim")

        with pytest.raises(ValidationError) as exc_info:
            instance.validate_parameters()

        locations = {e.location: e.error_type for e in exc_info.value.validation_errors}
        assert locations == {"share": "missing", "image": "file_not_found"}

        instance.share = "share"
        image = tmp_path / "install.wim"
        image.write_bytes(b"")
        instance.image = str(image)
        instance.validate_parameters()

    @pytest.mark.asyncio
    async def test_execute_resolves_and_runs(self, share_task, tmp_path):
        image = tmp_path / "install.wim"
        image.write_bytes(b"")
        state = State({"DeploymentShare": "share"})

        instance = share_task()
        instance.image = str(image)
        await instance.execute(state)

        assert state["Mounted"] == "share"

    @pytest.mark.asyncio
    async def test_execute_honours_cancellation(self, tasks):
        token = CancellationToken()
        token.cancel()
        state = State()

        with pytest.raises(OperationCancelledError):
            await tasks.record().execute(state, token)

        assert state["Log"] is None

    def test_decorator_rejects_non_tasks(self, registry):
        with pytest.raises(TypeError):
            task("not-a-task", registry=registry)(object)

    def test_decorator_rejects_abstract_tasks(self, registry):
        class StillAbstract(TaskBase):
            pass

        with pytest.raises(TypeError):
            task("abstract", registry=registry)(StillAbstract)
