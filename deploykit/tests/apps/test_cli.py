"""Tests for the deploykit command line front end."""

import argparse
import json
from types import SimpleNamespace

import pytest

from deploykit.apps import deploykit_cli
from deploykit.apps.deploykit_cli import build_parser, main, parse_parameter, run


def write_sequence(path, id, tasks, phase="Installation", **extra):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"ID": id, "Phase": phase, "Tasks": tasks, **extra}))
    return path


def create_directory(path, **parameters):
    return {"Task": "create-directory", "Parameters": {"path": str(path), **parameters}}


class TestParser:
    """Test argument parsing."""

    def test_parse_parameter(self):
        assert parse_parameter("path=C:/Deploy") == ("path", "C:/Deploy")
        assert parse_parameter("clean=true") == ("clean", True)
        assert parse_parameter("count = 3") == ("count", 3)
        assert parse_parameter("value=") == ("value", "")

    @pytest.mark.parametrize("text", ["path", "=value"])
    def test_parse_parameter_rejects(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_parameter(text)

    def test_run_arguments(self):
        args = build_parser().parse_args(["run", "abc123", "--store", "seq", "--resume", "--no-checkpoint"])

        assert args.command == "run"
        assert args.sequence == "abc123"
        assert args.resume is True
        assert args.checkpoint is False

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestList:
    """Test listing a store."""

    @pytest.mark.asyncio
    async def test_lists_sequences(self, tmp_path, capsys):
        write_sequence(tmp_path / "foo.json", "abc123", [], Name="Workstation")
        (tmp_path / "corrupt.json").write_text("{")

        code = await main(["list", "--store", str(tmp_path)])

        assert code == 0
        output = capsys.readouterr().out
        assert "abc123" in output
        assert "Workstation" in output

    @pytest.mark.asyncio
    async def test_missing_store(self, tmp_path):
        assert await main(["list", "--store", str(tmp_path / "missing")]) == 1


class TestRun:
    """Test running task sequences."""

    @pytest.mark.asyncio
    async def test_run_by_id(self, tmp_path):
        store = tmp_path / "sequences"
        target = tmp_path / "out" / "a"
        write_sequence(store / "foo.json", "abc123", [create_directory(target, state="Created")])
        state_file = tmp_path / "state.json"

        code = await main(["run", "abc123", "--store", str(store), "--state", str(state_file)])

        assert code == 0
        assert target.is_dir()
        saved = json.loads(state_file.read_text())
        assert saved["Progress"] == 1
        assert saved["TaskSequence"] == "abc123"
        assert saved["Created"] == str(target.absolute())

    @pytest.mark.asyncio
    async def test_run_by_path_without_checkpoint(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = write_sequence(tmp_path / "foo.json", "abc123", [create_directory(tmp_path / "a")])

        code = await main(["run", str(path), "--no-checkpoint"])

        assert code == 0
        assert (tmp_path / "a").is_dir()
        assert not (tmp_path / "deploykit-state.json").exists()

    @pytest.mark.asyncio
    async def test_run_by_path_ignores_shell_path(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("PATH", "/usr/bin:/bin")
        path = write_sequence(tmp_path / "foo.json", "abc123", [create_directory(tmp_path / "a")])

        assert await main(["run", str(path), "--no-checkpoint"]) == 0
        assert (tmp_path / "a").is_dir()

    @pytest.mark.asyncio
    async def test_unknown_sequence(self, tmp_path):
        assert await main(["run", "missing", "--store", str(tmp_path), "--no-checkpoint"]) == 1

    @pytest.mark.asyncio
    async def test_non_critical_failure_succeeds(self, tmp_path):
        existing = tmp_path / "existing"
        existing.mkdir()
        path = write_sequence(
            tmp_path / "foo.json",
            "abc123",
            [create_directory(existing, must_not_exist=True, is_critical=False)],
        )

        assert await main(["run", str(path), "--no-checkpoint"]) == 0

    @pytest.mark.asyncio
    async def test_critical_failure_and_resume(self, tmp_path):
        first = tmp_path / "first"
        blocker = tmp_path / "second"
        blocker.mkdir()
        store = tmp_path / "sequences"
        write_sequence(
            store / "foo.json",
            "abc123",
            [create_directory(first), create_directory(blocker, must_not_exist=True)],
        )
        state_file = tmp_path / "state.json"
        arguments = ["run", "abc123", "--store", str(store), "--state", str(state_file)]

        assert await main(arguments) == 1
        assert json.loads(state_file.read_text())["Progress"] == 1

        first.rmdir()
        blocker.rmdir()
        assert await main([*arguments, "--resume"]) == 0

        assert not first.exists()
        assert blocker.is_dir()
        assert json.loads(state_file.read_text())["Progress"] == 2

    @pytest.mark.asyncio
    async def test_resume_of_another_sequence_starts_over(self, tmp_path):
        store = tmp_path / "sequences"
        target = tmp_path / "a"
        write_sequence(store / "foo.json", "abc123", [create_directory(target)])
        state_file = tmp_path / "state.json"
        state_file.write_text(json.dumps({"Progress": 1, "TaskSequence": "other", "Phase": "Installation"}))

        code = await main(["run", "abc123", "--store", str(store), "--state", str(state_file), "--resume"])

        assert code == 0
        assert target.is_dir()

    @pytest.mark.asyncio
    async def test_malformed_state(self, tmp_path):
        path = write_sequence(tmp_path / "foo.json", "abc123", [])
        state_file = tmp_path / "state.json"
        state_file.write_text("[1, 2]")

        assert await main(["run", str(path), "--state", str(state_file)]) == 1


class TestTask:
    """Test running a single task."""

    @pytest.mark.asyncio
    async def test_runs_task(self, tmp_path):
        target = tmp_path / "a"

        assert await main(["task", "create-directory", "-p", f"path={target}"]) == 0
        assert target.is_dir()

    @pytest.mark.asyncio
    async def test_resolves_class_name_and_saves_state(self, tmp_path):
        target = tmp_path / "a"
        state_file = tmp_path / "state.json"

        code = await main(
            ["task", "CreateDirectory", "-p", f"path={target}", "-p", "state=Created", "--state", str(state_file)]
        )

        assert code == 0
        assert json.loads(state_file.read_text())["Created"] == str(target.absolute())

    @pytest.mark.asyncio
    async def test_missing_parameter(self):
        assert await main(["task", "clear-state"]) == 1

    @pytest.mark.asyncio
    async def test_unknown_task(self):
        assert await main(["task", "no-such-task"]) == 1

    @pytest.mark.asyncio
    async def test_failing_task(self, tmp_path):
        assert await main(["task", "create-directory", "-p", f"path={tmp_path}", "-p", "must_not_exist=true"]) == 1


class TestEntryPoint:
    """Test the console script wrapper around ``main``."""

    def fake_asyncio(self, outcome):
        def fake_run(coro):
            coro.close()
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome

        return SimpleNamespace(run=fake_run)

    def test_exit_code_of_main(self, monkeypatch):
        monkeypatch.setattr(deploykit_cli, "asyncio", self.fake_asyncio(1))

        with pytest.raises(SystemExit) as exc_info:
            run()

        assert exc_info.value.code == 1

    def test_keyboard_interrupt_exits_130(self, monkeypatch):
        monkeypatch.setattr(deploykit_cli, "asyncio", self.fake_asyncio(KeyboardInterrupt()))

        with pytest.raises(SystemExit) as exc_info:
            run()

        assert exc_info.value.code == 130
