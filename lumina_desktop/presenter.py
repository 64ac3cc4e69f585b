"""UI sinks for launch progress: the pywebview window and the console."""

from __future__ import annotations

import logging
from html import escape
from typing import Optional, Protocol

from rich.console import Console
from rich.markup import escape as markup_escape

from lumina_desktop.exceptions import (
    LauncherError,
    NoInterpreterError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


class UIPresenter(Protocol):
    def show_loading(self, message: str) -> None: ...

    def show_error(self, error: Exception) -> None: ...

    def navigate(self, url: str) -> None: ...


# ── Inline pages ──────────────────────────────────────────────────────────────
_PAGE = """<!DOCTYPE html>
<html lang="en"><head><meta charset="utf-8"><style>
*{{box-sizing:border-box;margin:0;padding:0}}
body{{background:#f0f2f6;color:#262730;
     font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',sans-serif;
     display:flex;align-items:center;justify-content:center;
     min-height:100vh;padding:40px}}
.card{{max-width:600px;width:100%;background:#fff;
      border:1px solid #e0e3ea;border-radius:16px;padding:40px}}
h1{{font-size:22px;font-weight:800;margin-bottom:12px}}
.sub{{font-size:14px;color:#6b7280;line-height:1.6;white-space:pre-wrap}}
.spin{{width:36px;height:36px;border:4px solid #e0e3ea;border-top-color:#ff6b6b;
      border-radius:50%;animation:s 1s linear infinite;margin-bottom:20px}}
@keyframes s{{to{{transform:rotate(360deg)}}}}
ul{{margin:16px 0 0 18px;font-size:12px;font-family:monospace;color:#374151}}
.err h1{{color:#c0392b}}
button{{margin-top:24px;padding:8px 18px;border:0;border-radius:8px;
       background:#ff6b6b;color:#fff;font-weight:600;cursor:pointer}}
</style></head><body><div class="card{card_class}">{body}</div></body></html>"""


def loading_html(message: str) -> str:
    body = f'<div class="spin"></div><h1>{escape(message)}</h1>'
    return _PAGE.format(card_class="", body=body)


def error_html(error: Exception, log_file: Optional[str] = None) -> str:
    title = getattr(error, "title", LauncherError.title)
    parts = [f"<h1>{escape(title)}</h1>", f'<p class="sub">{escape(str(error))}</p>']
    if isinstance(error, (NotFoundError, NoInterpreterError)) and error.tried:
        items = "".join(f"<li>{escape(t)}</li>" for t in error.tried)
        parts.append(f"<ul>{items}</ul>")
    if log_file:
        parts.append(f'<p class="sub">Details: {escape(log_file)}</p>')
    parts.append('<button onclick="pywebview.api.retry()">Try again</button>')
    return _PAGE.format(card_class=" err", body="".join(parts))


class WebviewPresenter:
    """Drive a pywebview window from launch events."""

    def __init__(
        self,
        window,
        title: str = "Lumina",
        size: tuple[int, int] = (1500, 800),
        log_file: Optional[str] = None,
    ):
        self.window = window
        self.title = title
        self.size = size
        self.log_file = log_file

    def show_loading(self, message: str) -> None:
        self.window.load_html(loading_html(message))

    def show_error(self, error: Exception) -> None:
        logger.info("Showing error view: %s", error)
        self.window.load_html(error_html(error, self.log_file))
        self.window.show()

    def navigate(self, url: str) -> None:
        logger.info("Service ready, loading %s", url)
        self.window.title = self.title
        try:
            self.window.resize(*self.size)
        except Exception as exc:  # noqa: BLE001
            logger.debug("resize() unavailable: %s", exc)
        self.window.load_url(url)
        self.window.show()


class ConsolePresenter:
    """Report launch events on the terminal (headless ``serve``)."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.url: Optional[str] = None
        self.error: Optional[Exception] = None

    def show_loading(self, message: str) -> None:
        self.console.print(f"[bold]{markup_escape(message)}[/bold]")

    def show_error(self, error: Exception) -> None:
        self.error = error
        title = getattr(error, "title", LauncherError.title)
        self.console.print(f"[red]{markup_escape(title)}:[/red] {markup_escape(str(error))}")

    def navigate(self, url: str) -> None:
        self.url = url
        self.console.print(f"[bold green]Ready:[/bold green] [blue]{url}[/blue]")
