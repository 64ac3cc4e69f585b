"""Frozen-app entry point (PyInstaller) for the Lumina desktop launcher.

The bundle contains the launcher, pywebview and the ``streamlit_app`` folder.
The Streamlit app itself runs under the host's Python, found at launch time.

Build:
    pyinstaller --windowed --name Lumina \
        --add-data "streamlit_app:streamlit_app" \
        --add-data "config.yaml:." packaging/desktop_launcher.py
"""
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from lumina_desktop.config import Config
from lumina_desktop.desktop import run_desktop
from lumina_desktop.exceptions import ConfigError
from lumina_desktop.paths import resource_path

# ── Log to user home (no console in windowed builds) ──────────────────────────
_OUTPUT_DIR = Path.home() / "LuminaOutput"
_LOG_FILE = _OUTPUT_DIR / "launcher.log"
_OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
logging.basicConfig(
    filename=str(_LOG_FILE),
    level=logging.DEBUG,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


def main() -> int:
    log.info("Launcher started, frozen=%s MEIPASS=%s",
             getattr(sys, "frozen", False), getattr(sys, "_MEIPASS", None))

    config_file = resource_path("config.yaml")
    if config_file.exists():
        os.environ.setdefault("LUMINA_CONFIG", str(config_file))

    try:
        config = Config.load()
    except ConfigError:
        log.exception("Could not load configuration")
        return 1

    return run_desktop(config, log_file=str(_LOG_FILE))


if __name__ == "__main__":
    raise SystemExit(main())
