from __future__ import annotations

from pathlib import Path

import pytest

from mux_engine import paths
from mux_engine.errors import ValidationError
from mux_engine.paths import (
    default_data_root,
    ensure_workspace_directories,
    normalize_path,
    path_key,
    paths_equal,
    resolve_workspace_paths,
)


def test_normalize_collapses_dots_and_separators() -> None:
    assert normalize_path("/src/app/./sub/../CMakeLists.txt") == "/src/app/CMakeLists.txt"
    assert normalize_path("/src//app/CMakeLists.txt") == "/src/app/CMakeLists.txt"
    assert normalize_path(r"C:\src\app\CMakeLists.txt") == "C:/src/app/CMakeLists.txt"


def test_normalize_makes_relative_paths_absolute(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    assert normalize_path("app/CMakeLists.txt") == tmp_path.as_posix() + "/app/CMakeLists.txt"


def test_normalize_accepts_pathlike() -> None:
    assert normalize_path(Path("/src/app/CMakeLists.txt")) == "/src/app/CMakeLists.txt"


@pytest.mark.parametrize("raw", [None, "", "   ", "/src/\x00/CMakeLists.txt", b"/src"])
def test_normalize_rejects_unusable_paths(raw: object) -> None:
    with pytest.raises(ValidationError):
        normalize_path(raw)  # type: ignore[arg-type]


def test_key_is_case_folded_only_on_case_insensitive_platforms(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(paths, "CASE_INSENSITIVE_PATHS", False)
    assert not paths_equal("/src/App/CMakeLists.txt", "/src/app/CMakeLists.txt")

    monkeypatch.setattr(paths, "CASE_INSENSITIVE_PATHS", True)
    assert paths_equal("/src/App/CMakeLists.txt", "/src/app/CMakeLists.txt")
    assert path_key("/SRC/x") == "/src/x"


def test_paths_equal_is_false_for_unusable_paths() -> None:
    assert not paths_equal(None, None)
    assert not paths_equal("", "/src")


def test_default_data_root_prefers_env_override(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("BUILDMUX_DATA_ROOT", str(tmp_path / "explicit"))
    assert default_data_root() == tmp_path / "explicit"


def test_default_data_root_falls_back_to_xdg(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    for var in ("BUILDMUX_DATA_ROOT", "LOCALAPPDATA", "APPDATA"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    assert default_data_root() == tmp_path / "buildmux"


def test_resolve_workspace_paths_layout(tmp_path: Path) -> None:
    ws = resolve_workspace_paths("main", data_root=tmp_path)
    root = tmp_path.resolve()
    assert ws.workspace_root == root / "workspaces" / "main"
    assert ws.sqlite_store_path.name == "entries.sqlite"
    assert ws.json_store_path.name == "entries.json"
    assert ws.host_state_path.parent == ws.workspace_root


def test_ensure_workspace_directories_creates_only_the_workspace_root(tmp_path: Path) -> None:
    ws = resolve_workspace_paths("main", data_root=tmp_path)

    ensure_workspace_directories(ws)
    ensure_workspace_directories(ws)

    assert ws.workspace_root.is_dir()
    assert list(ws.workspace_root.iterdir()) == []


@pytest.mark.parametrize("name", ["", " ", "..", ".", "a/b", "a\\b", "x:y"])
def test_resolve_workspace_paths_rejects_bad_names(tmp_path: Path, name: str) -> None:
    with pytest.raises(ValidationError):
        resolve_workspace_paths(name, data_root=tmp_path)
