"""Tests for the environment report."""

import io

import httpx
import pytest
from rich.console import Console

from lumina_desktop.diagnostics import collect, render
from lumina_desktop.models import LaunchMode
from tests.fixtures.fakes import FakeExecutor, ScriptedHttp, make_app_root, make_config


def _healthy_executor():
    return FakeExecutor(
        {
            "python --version": (0, "Python 3.12.1"),
            "python3 --version": (0, "Python 3.12.1"),
            "python -m streamlit --version": (0, "Streamlit, version 1.38.0"),
            "python -c import streamlit; print(streamlit.__version__)": (0, "1.38.0"),
            "python -c import pandas; print(pandas.__version__)": (0, "2.2.2"),
            "python -c import altair; print(altair.__version__)": (0, "5.3.0"),
        }
    )


def test_report_for_missing_python(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    report = collect(
        make_config(),
        mode=LaunchMode.SOURCE_CHECKOUT,
        executor=FakeExecutor(),
        port_check=lambda host, port: True,
    )
    assert report.interpreter is None
    assert report.packages == {}
    assert "No working Python installation found" in report.issues
    assert any("python.org" in r for r in report.recommendations)


def test_report_for_healthy_checkout(monkeypatch, tmp_path):
    root = make_app_root(tmp_path)
    data_dir = root / "streamlit_app" / "data"
    data_dir.mkdir()
    for name in ("updated-database-results.csv", "livsmedelsdatabas.csv",
                 "recipie_databas.csv", "meal_databas.csv"):
        (data_dir / name).write_text("h\n")
    monkeypatch.chdir(root)

    report = collect(
        make_config(),
        mode=LaunchMode.SOURCE_CHECKOUT,
        executor=_healthy_executor(),
        http_get=ScriptedHttp(200),
        port_check=lambda host, port: False,
    )

    assert report.interpreter == "python"
    assert report.module_version == "Streamlit, version 1.38.0"
    assert report.packages == {"streamlit": "1.38.0", "pandas": "2.2.2", "altair": "5.3.0"}
    assert report.server_root is not None
    assert report.server_root.has_data_dir
    assert report.http_status == 200
    assert report.issues == []


def test_report_flags_missing_data_and_busy_port(monkeypatch, tmp_path):
    monkeypatch.chdir(make_app_root(tmp_path))
    report = collect(
        make_config(),
        mode=LaunchMode.SOURCE_CHECKOUT,
        executor=_healthy_executor(),
        http_get=ScriptedHttp(httpx.ConnectError("refused")),
        port_check=lambda host, port: False,
    )
    assert any(i.startswith("Data files missing") for i in report.issues)
    assert any("Port 8501" in i for i in report.issues)


def test_render_writes_sections(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    report = collect(
        make_config(),
        mode=LaunchMode.SOURCE_CHECKOUT,
        executor=FakeExecutor(),
        port_check=lambda host, port: True,
    )
    out = io.StringIO()
    render(report, Console(file=out, width=200))
    text = out.getvalue()
    assert "Candidate roots" in text
    assert "Interpreters" in text
    assert "Issues found" in text


def test_render_shows_entry_file_paths(monkeypatch, tmp_path):
    root = make_app_root(tmp_path)
    monkeypatch.chdir(root)
    report = collect(
        make_config(),
        mode=LaunchMode.SOURCE_CHECKOUT,
        executor=FakeExecutor(),
        port_check=lambda host, port: True,
    )
    out = io.StringIO()
    render(report, Console(file=out, width=400))
    assert str(root / "streamlit_app" / "lumina_app.py") in out.getvalue()


@pytest.mark.parametrize(
    "mode, forwarded",
    [(LaunchMode.SOURCE_CHECKOUT, True), (LaunchMode.PACKAGED_BUNDLE, False)],
)
def test_interpreter_checks_use_launch_environment(monkeypatch, tmp_path, mode, forwarded):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DYLD_LIBRARY_PATH", "/bundle/lib")
    seen = []
    executor = FakeExecutor()

    def recording(command, timeout, env=None):
        seen.append(env)
        return executor(command, timeout, env)

    collect(make_config(), mode=mode, executor=recording, port_check=lambda host, port: True)

    assert seen
    assert all(("DYLD_LIBRARY_PATH" in env) is forwarded for env in seen)
