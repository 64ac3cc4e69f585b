"""Tests for entry-file resolution across deployment layouts."""

import os
import sys
from unittest.mock import MagicMock

import pytest

from lumina_desktop.exceptions import NotFoundError
from lumina_desktop.models import LaunchMode
from lumina_desktop.paths import candidate_roots, detect_mode, resolve_launch_paths
from tests.fixtures.fakes import make_app_root


def _entry(root):
    return os.path.join(root, "streamlit_app", "lumina_app.py")


def test_first_existing_candidate_wins_and_rest_not_checked(tmp_path):
    roots = [str(tmp_path / "a"), str(tmp_path / "b"), str(tmp_path / "c")]
    exists = MagicMock(side_effect=lambda p: p != _entry(roots[0]))

    paths = resolve_launch_paths(LaunchMode.PACKAGED_BUNDLE, roots=roots, exists=exists)

    assert paths.entry_file == tmp_path / "b" / "streamlit_app" / "lumina_app.py"
    assert exists.call_count == 2
    assert [c.args[0] for c in exists.call_args_list] == [_entry(roots[0]), _entry(roots[1])]


def test_working_and_data_dirs(tmp_path):
    root = make_app_root(tmp_path)
    paths = resolve_launch_paths(LaunchMode.SOURCE_CHECKOUT, roots=[str(root)])

    assert paths.working_dir == root / "streamlit_app"
    assert paths.data_dir == root / "streamlit_app" / "data"
    assert paths.data_dir.is_dir()


def test_existing_data_dir_is_fine(tmp_path):
    root = make_app_root(tmp_path)
    (root / "streamlit_app" / "data").mkdir()
    paths = resolve_launch_paths(LaunchMode.SOURCE_CHECKOUT, roots=[str(root)])
    assert paths.data_dir.is_dir()


def test_no_candidate_raises_with_all_tried_in_order(tmp_path):
    roots = [str(tmp_path / "x"), str(tmp_path / "y")]
    with pytest.raises(NotFoundError) as exc_info:
        resolve_launch_paths(LaunchMode.PACKAGED_BUNDLE, roots=roots, exists=lambda p: False)
    assert exc_info.value.tried == [_entry(roots[0]), _entry(roots[1])]
    assert _entry(roots[1]) in str(exc_info.value)


def test_empty_and_none_roots_are_skipped(tmp_path):
    root = str(make_app_root(tmp_path))
    exists = MagicMock(side_effect=os.path.exists)

    paths = resolve_launch_paths(
        LaunchMode.PACKAGED_BUNDLE, roots=[None, "", root], exists=exists
    )

    assert exists.call_count == 1
    assert paths.tried == (_entry(root),)


def test_custom_subdir_and_entry(tmp_path):
    (tmp_path / "app").mkdir()
    (tmp_path / "app" / "main.py").write_text("")
    paths = resolve_launch_paths(
        LaunchMode.SOURCE_CHECKOUT,
        server_subdir="app",
        entry_file="main.py",
        data_subdir="store",
        roots=[str(tmp_path)],
    )
    assert paths.entry_file == tmp_path / "app" / "main.py"
    assert (tmp_path / "app" / "store").is_dir()


def test_detect_mode_uses_frozen_flag(monkeypatch):
    monkeypatch.delattr(sys, "frozen", raising=False)
    assert detect_mode() is LaunchMode.SOURCE_CHECKOUT
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    assert detect_mode() is LaunchMode.PACKAGED_BUNDLE


def test_packaged_roots_start_with_bundle(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "_MEIPASS", str(tmp_path), raising=False)
    roots = candidate_roots(LaunchMode.PACKAGED_BUNDLE)
    assert roots[0] == str(tmp_path)
    assert roots[1] == os.path.join(str(tmp_path), "extraResources")


def test_packaged_roots_skip_unset_bundle(monkeypatch):
    monkeypatch.delattr(sys, "_MEIPASS", raising=False)
    roots = candidate_roots(LaunchMode.PACKAGED_BUNDLE)
    assert all(roots)
    assert not any(r.endswith("extraResources") for r in roots)


def test_source_roots_end_with_cwd(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    roots = candidate_roots(LaunchMode.SOURCE_CHECKOUT)
    assert roots[-1] == os.getcwd()
