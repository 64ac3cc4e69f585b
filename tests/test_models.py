"""Tests for data models and the error hierarchy."""

from pathlib import Path

import pytest

from lumina_desktop.exceptions import (
    LauncherError,
    MissingDependencyError,
    NoInterpreterError,
    NotFoundError,
    ReadinessTimeout,
    UnexpectedExit,
)
from lumina_desktop.models import LaunchPlan, ProcessState, SupervisedProcess


def _plan(**overrides):
    fields = dict(
        entry_file=Path("/app/streamlit_app/lumina_app.py"),
        data_dir=Path("/app/streamlit_app/data"),
        working_dir=Path("/app/streamlit_app"),
        interpreter="python3",
        arguments=["-m", "streamlit", "run", "lumina_app.py"],
        env_overrides={"STREAMLIT_SERVER_PORT": "8501"},
    )
    fields.update(overrides)
    return LaunchPlan(**fields)


def test_plan_command_and_env():
    plan = _plan()
    assert plan.command == ["python3", "-m", "streamlit", "run", "lumina_app.py"]
    env = plan.build_env({"PATH": "/usr/bin", "STREAMLIT_SERVER_PORT": "9000"})
    assert env == {"PATH": "/usr/bin", "STREAMLIT_SERVER_PORT": "8501"}


def test_plan_overrides_are_read_only():
    source = {"A": "1"}
    plan = _plan(env_overrides=source)
    source["A"] = "2"
    assert plan.env_overrides["A"] == "1"
    with pytest.raises(TypeError):
        plan.env_overrides["B"] = "x"


def test_plan_to_dict():
    data = _plan().to_dict()
    assert data["interpreter"] == "python3"
    assert data["arguments"][0] == "-m"
    assert data["env_overrides"] == {"STREAMLIT_SERVER_PORT": "8501"}


def test_supervised_process_alive():
    process = SupervisedProcess(pid=1, state=ProcessState.RUNNING)
    assert process.alive
    process.state = ProcessState.CRASHED_EXIT
    assert not process.alive


@pytest.mark.parametrize(
    "error",
    [
        NotFoundError(["/a"]),
        NoInterpreterError(["python"]),
        MissingDependencyError("python", "streamlit"),
        UnexpectedExit(1),
        ReadinessTimeout("http://localhost:8501/", 30),
    ],
)
def test_errors_share_base(error):
    assert isinstance(error, LauncherError)
    assert error.title


def test_unexpected_exit_messages():
    assert "exit code 3" in str(UnexpectedExit(3))
    assert "signal 9" in str(UnexpectedExit(-9))
