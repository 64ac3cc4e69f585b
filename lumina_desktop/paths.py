"""Locate the server entry file across source and packaged layouts."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Callable, Optional

from lumina_desktop.exceptions import NotFoundError
from lumina_desktop.models import LaunchMode, LaunchPaths

logger = logging.getLogger(__name__)

# Parent of the lumina_desktop package: the checkout root, or the bundle's
# application directory when frozen.
APP_ROOT = Path(__file__).resolve().parents[1]


def _bundle_root() -> Optional[str]:
    return getattr(sys, "_MEIPASS", None)


def _bundle_extra_resources() -> Optional[str]:
    root = _bundle_root()
    return os.path.join(root, "extraResources") if root else None


def _app_root() -> Optional[str]:
    return str(APP_ROOT)


def _executable_dir() -> Optional[str]:
    return os.path.dirname(sys.executable) if sys.executable else None


def _cwd() -> Optional[str]:
    return os.getcwd()


# Priority order per layout; the first root holding the entry file wins.
CANDIDATE_ROOTS: dict[LaunchMode, tuple[Callable[[], Optional[str]], ...]] = {
    LaunchMode.PACKAGED_BUNDLE: (
        _bundle_root,
        _bundle_extra_resources,
        _app_root,
        _executable_dir,
    ),
    LaunchMode.SOURCE_CHECKOUT: (
        _app_root,
        _cwd,
    ),
}


def detect_mode() -> LaunchMode:
    """Read the packaging flag set by PyInstaller and similar freezers."""
    if getattr(sys, "frozen", False):
        return LaunchMode.PACKAGED_BUNDLE
    return LaunchMode.SOURCE_CHECKOUT


def resource_path(relative: str) -> Path:
    """Resolve a resource path for both frozen and dev modes."""
    base = Path(getattr(sys, "_MEIPASS", APP_ROOT))
    return base / relative


def candidate_roots(mode: LaunchMode) -> list[str]:
    """Evaluate the root table for *mode*, dropping unset entries."""
    roots = []
    for source in CANDIDATE_ROOTS[mode]:
        root = source()
        if root:
            roots.append(root)
    return roots


def resolve_launch_paths(
    mode: LaunchMode,
    server_subdir: str = "streamlit_app",
    entry_file: str = "lumina_app.py",
    data_subdir: str = "data",
    roots: Optional[list[Optional[str]]] = None,
    exists: Callable[[str], bool] = os.path.exists,
) -> LaunchPaths:
    """Return the first candidate layout whose entry file exists.

    Candidates after the first hit are never checked. The data directory is
    created if it is missing.

    Raises:
        NotFoundError: no candidate root holds ``<server_subdir>/<entry_file>``.
    """
    if roots is None:
        roots = candidate_roots(mode)

    tried: list[str] = []
    for root in roots:
        if not root:
            continue
        candidate = os.path.join(root, server_subdir, entry_file)
        tried.append(candidate)
        if exists(candidate):
            server_dir = Path(root) / server_subdir
            data_dir = server_dir / data_subdir
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Resolved entry file (%s mode): %s", mode.value, candidate)
            return LaunchPaths(
                entry_file=Path(candidate),
                data_dir=data_dir,
                working_dir=server_dir,
                tried=tuple(tried),
            )
        logger.debug("Entry file not at %s", candidate)

    logger.error("Entry file not found in any of %d candidates", len(tried))
    raise NotFoundError(tried)
