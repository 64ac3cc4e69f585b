"""Tests for the pywebview shell, with a stand-in ``webview`` module."""

import sys
import types

import pytest

from lumina_desktop import desktop
from lumina_desktop.desktop import LauncherApi, run_desktop
from tests.fixtures.fakes import make_config


class _Event:
    def __init__(self):
        self.handlers = []

    def __iadd__(self, handler):
        self.handlers.append(handler)
        return self


class _Window:
    def __init__(self, title, **kwargs):
        self.title = title
        self.kwargs = kwargs
        self.events = types.SimpleNamespace(closed=_Event())


class _Session:
    instances = []

    def __init__(self, config, presenter):
        self.presenter = presenter
        self.error = None
        self.launch_calls = 0
        self.retry_calls = 0
        self.shutdown_calls = 0
        _Session.instances.append(self)

    def launch(self):
        self.launch_calls += 1

    def retry(self):
        self.retry_calls += 1

    def shutdown(self):
        self.shutdown_calls += 1


@pytest.fixture
def fake_webview(monkeypatch):
    module = types.ModuleType("webview")
    module.windows = []

    def create_window(title, **kwargs):
        window = _Window(title, **kwargs)
        module.windows.append(window)
        return window

    def start(func=None):
        func()
        for handler in module.windows[0].events.closed.handlers:
            handler()

    module.create_window = create_window
    module.start = start
    monkeypatch.setitem(sys.modules, "webview", module)
    _Session.instances = []
    monkeypatch.setattr(desktop, "LaunchSession", _Session)
    return module


def test_run_desktop_launches_and_shuts_down(fake_webview):
    config = make_config(window={"title": "Lumina", "width": 1200, "height": 700})

    assert run_desktop(config, log_file="/tmp/launcher.log") == 0

    window = fake_webview.windows[0]
    assert window.kwargs["width"] == 1200
    assert "Starting" in window.kwargs["html"]
    session = _Session.instances[0]
    assert session.launch_calls == 1
    assert session.shutdown_calls == 2
    assert session.presenter.log_file == "/tmp/launcher.log"

    window.kwargs["js_api"].retry()
    assert session.retry_calls == 1


def test_run_desktop_reports_failed_session(fake_webview, monkeypatch):
    def failing_launch(self):
        self.error = RuntimeError("boom")

    monkeypatch.setattr(_Session, "launch", failing_launch)
    assert run_desktop(make_config()) == 1


def test_api_retry_without_session():
    LauncherApi().retry()
