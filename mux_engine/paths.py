"""
Path policy for buildmux.

This module is the single choke point for two concerns:

- Entry identity: normalizing user-supplied build root paths and deriving the
  key used for equality and de-duplication.
- Storage layout: resolving where a workspace's entry store, settings and
  reference host state live under the buildmux data root.

Nothing in the engine should compare raw path strings directly.
"""

from __future__ import annotations

import os
import posixpath
import re
import sys
from dataclasses import dataclass
from pathlib import Path

from .errors import ValidationError

# Platforms whose default filesystems compare paths case-insensitively.
CASE_INSENSITIVE_PATHS: bool = os.name == "nt" or sys.platform == "darwin"

_DRIVE_RE = re.compile(r"^([A-Za-z]:)(/.*)?$")


@dataclass(frozen=True, slots=True)
class WorkspacePaths:
    """
    Concrete resolved paths for a buildmux workspace.

    Attributes
    ----------
    data_root:
        Root directory for all buildmux data.
    workspace_root:
        Root for the named workspace within `data_root`.
    sqlite_store_path:
        SQLite entry store.
    json_store_path:
        JSON entry store (alternate backend).
    host_state_path:
        State file of the reference file-backed host.
    """

    data_root: Path
    workspace_root: Path
    sqlite_store_path: Path
    json_store_path: Path
    host_state_path: Path


def _split_drive(text: str) -> tuple[str, str]:
    m = _DRIVE_RE.match(text)
    if m is None:
        return "", text
    return m.group(1), m.group(2) or "/"


def _is_absolute(text: str) -> bool:
    return text.startswith("/") or _DRIVE_RE.match(text) is not None


def normalize_path(raw: str | os.PathLike[str] | None) -> str:
    """
    Normalize a build root path into its canonical stored form.

    Parameters
    ----------
    raw:
        User- or host-supplied path. Relative paths are made absolute against
        the current working directory.

    Returns
    -------
    str
        Absolute path using '/' separators with '.' and '..' segments collapsed.

    Raises
    ------
    ValidationError
        If the path is empty or cannot be normalized.
    """
    if raw is None:
        raise ValidationError("Path must not be empty.")
    try:
        text = os.fspath(raw)
    except TypeError as exc:
        raise ValidationError(f"Path must be a string, got {type(raw).__name__}.") from exc
    if isinstance(text, bytes):
        raise ValidationError("Path must be a string, not bytes.")

    text = text.strip()
    if not text:
        raise ValidationError("Path must not be empty.")
    if "\x00" in text:
        raise ValidationError("Path must not contain NUL characters.")

    text = os.path.expanduser(text).replace("\\", "/")
    if not _is_absolute(text):
        text = Path.cwd().as_posix().rstrip("/") + "/" + text

    drive, rest = _split_drive(text)
    collapsed = posixpath.normpath(rest)
    if collapsed.startswith("//"):
        collapsed = "/" + collapsed.lstrip("/")
    return drive + collapsed


def path_key(raw: str | os.PathLike[str] | None) -> str:
    """
    Return the equality key for a path.

    The key is the normalized path, case-folded on case-insensitive platforms.

    Raises
    ------
    ValidationError
        If the path cannot be normalized.
    """
    normalized = normalize_path(raw)
    return normalized.casefold() if CASE_INSENSITIVE_PATHS else normalized


def paths_equal(a: str | os.PathLike[str] | None, b: str | os.PathLike[str] | None) -> bool:
    """Compare two paths by key. Unnormalizable paths are never equal to anything."""
    try:
        return path_key(a) == path_key(b)
    except ValidationError:
        return False


def default_data_root() -> Path:
    """
    Resolve the default buildmux data root.

    Preference order:
    1) BUILDMUX_DATA_ROOT if set
    2) %LOCALAPPDATA%, then %APPDATA% (Windows)
    3) $XDG_DATA_HOME
    4) ~/.local/share
    """
    explicit = os.environ.get("BUILDMUX_DATA_ROOT")
    if explicit:
        return Path(explicit)

    for var in ("LOCALAPPDATA", "APPDATA"):
        value = os.environ.get(var)
        if value:
            return Path(value) / "buildmux"

    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "buildmux"

    return Path.home() / ".local" / "share" / "buildmux"


def resolve_workspace_paths(workspace_name: str, data_root: Path | None = None) -> WorkspacePaths:
    """
    Resolve and return all filesystem paths for a given workspace.

    Parameters
    ----------
    workspace_name:
        Name of the workspace. Must be a non-empty, simple folder name.
    data_root:
        Optional override for the buildmux data root.

    Returns
    -------
    WorkspacePaths
        Resolved workspace paths.

    Raises
    ------
    ValidationError
        If workspace_name is not a simple folder name.
    """
    name = workspace_name.strip()
    if not name:
        raise ValidationError("Workspace name must not be empty.")
    if any(ch in name for ch in r'\/:*?"<>|'):
        raise ValidationError(f"Workspace name contains invalid characters: {name!r}")
    if name in {".", ".."}:
        raise ValidationError("Workspace name must not be '.' or '..'.")

    root = (data_root or default_data_root()).resolve()
    workspace_root = (root / "workspaces" / name).resolve()
    if root not in workspace_root.parents:
        raise ValidationError(f"Workspace root escapes the data root: {workspace_root}")

    return WorkspacePaths(
        data_root=root,
        workspace_root=workspace_root,
        sqlite_store_path=workspace_root / "entries.sqlite",
        json_store_path=workspace_root / "entries.json",
        host_state_path=workspace_root / "host_state.json",
    )


def ensure_workspace_directories(paths: WorkspacePaths) -> None:
    """Create the workspace directory structure if it does not already exist."""
    paths.workspace_root.mkdir(parents=True, exist_ok=True)
