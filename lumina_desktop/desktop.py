"""Native window shell: a pywebview window fronting the launch session."""

from __future__ import annotations

import logging
from typing import Optional

from lumina_desktop.config import Config
from lumina_desktop.presenter import WebviewPresenter, loading_html
from lumina_desktop.session import LaunchSession

logger = logging.getLogger(__name__)


class LauncherApi:
    """Methods exposed to the error page as ``pywebview.api``."""

    def __init__(self):
        self.session: Optional[LaunchSession] = None

    def retry(self) -> None:
        if self.session is not None:
            self.session.retry()


def run_desktop(config: Config, log_file: Optional[str] = None) -> int:
    """Open the window, launch the service in the background, block until closed."""
    import webview  # noqa: PLC0415

    api = LauncherApi()
    win = config.window
    window = webview.create_window(
        win.title,
        html=loading_html(f"Starting {config.app.name}…"),
        width=win.width,
        height=win.height,
        min_size=win.min_size,
        js_api=api,
    )
    presenter = WebviewPresenter(
        window, title=win.title, size=(win.width, win.height), log_file=log_file
    )
    session = LaunchSession(config, presenter)
    api.session = session

    # pywebview may fire closed more than once; shutdown() is idempotent
    window.events.closed += session.shutdown

    webview.start(session.launch)
    logger.info("Webview closed, exiting")
    session.shutdown()
    return 0 if session.error is None else 1
