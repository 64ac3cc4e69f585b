"""Tests for the window and console presenters."""

import io
from unittest.mock import MagicMock

from rich.console import Console

from lumina_desktop.exceptions import NotFoundError, ReadinessTimeout
from lumina_desktop.presenter import ConsolePresenter, WebviewPresenter, error_html, loading_html


def test_loading_html_escapes_message():
    html = loading_html("Starting <Lumina>…")
    assert "&lt;Lumina&gt;" in html
    assert "<Lumina>" not in html


def test_error_html_lists_tried_paths_and_retry():
    html = error_html(NotFoundError(["/a/streamlit_app/lumina_app.py", "/b/<x>"]), log_file="/tmp/launcher.log")
    assert "Application files not found" in html
    assert "<li>/a/streamlit_app/lumina_app.py</li>" in html
    assert "&lt;x&gt;" in html
    assert "/tmp/launcher.log" in html
    assert "pywebview.api.retry()" in html


def test_error_html_for_plain_exception():
    html = error_html(RuntimeError("boom"))
    assert "Lumina could not start" in html
    assert "boom" in html


def test_webview_presenter_navigate():
    window = MagicMock()
    presenter = WebviewPresenter(window, title="Lumina", size=(1500, 800))

    presenter.navigate("http://localhost:8501/")

    window.resize.assert_called_once_with(1500, 800)
    window.load_url.assert_called_once_with("http://localhost:8501/")
    window.show.assert_called_once()
    assert window.title == "Lumina"


def test_webview_presenter_navigate_without_resize():
    window = MagicMock()
    window.resize.side_effect = AttributeError("resize")
    WebviewPresenter(window).navigate("http://localhost:8501/")
    window.load_url.assert_called_once()


def test_webview_presenter_error_and_loading():
    window = MagicMock()
    presenter = WebviewPresenter(window)

    presenter.show_loading("Starting Lumina…")
    presenter.show_error(ReadinessTimeout("http://localhost:8501/", 30))

    first, second = [c.args[0] for c in window.load_html.call_args_list]
    assert "Starting Lumina" in first
    assert "The service did not respond" in second
    assert "after 30 attempts" in second


def test_console_presenter_records_outcome():
    out = io.StringIO()
    presenter = ConsolePresenter(Console(file=out, width=200))

    presenter.show_loading("Starting Lumina…")
    presenter.navigate("http://localhost:8501/")
    presenter.show_error(NotFoundError(["/x/[y]/lumina_app.py"]))

    assert presenter.url == "http://localhost:8501/"
    assert isinstance(presenter.error, NotFoundError)
    text = out.getvalue()
    assert "Ready" in text
    assert "/x/[y]/lumina_app.py" in text
