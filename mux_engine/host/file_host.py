"""
Reference host backed by a JSON state file.

This host stands in for an IDE's build-configuration subsystem when buildmux
runs from the command line. It records which build root is loaded, owns a
list of named profiles with enabled flags, imports profile names from CMake
preset files, and counts reload requests. It does not configure or build
anything.

State file format
-----------------
    {
      "schema_version": "buildmux_host_state_v1",
      "loaded_build_root": "/src/app/CMakeLists.txt",
      "profiles": [{"name": "Debug", "enabled": true}],
      "reload_requests": 3,
      "last_reload_requested_at_utc": "2026-01-01T00:00:00Z"
    }
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from ..errors import EntryStoreError
from ..json_io import read_json, write_json_atomic
from ..paths import normalize_path

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "buildmux_host_state_v1"
PRESET_FILE_NAMES = ("CMakePresets.json", "CMakeUserPresets.json")

LoadListener = Callable[[Any], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _format_utc(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(slots=True)
class HostProfile:
    """A named build profile with an enabled flag."""

    name: str
    enabled: bool = False


def read_configure_preset_names(presets_file: Path) -> list[str]:
    """
    Return the names of non-hidden configure presets in a CMake presets file.

    Only names are read; preset contents are not interpreted. Unreadable or
    malformed files yield an empty list.
    """
    try:
        payload = json.loads(presets_file.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return []
    except (OSError, ValueError) as exc:
        logger.debug("Ignoring unreadable presets file %s: %s", presets_file, exc)
        return []
    if not isinstance(payload, dict):
        return []
    presets = payload.get("configurePresets", [])
    if not isinstance(presets, list):
        return []

    names: list[str] = []
    for preset in presets:
        if not isinstance(preset, dict) or preset.get("hidden") is True:
            continue
        name = preset.get("name")
        if isinstance(name, str) and name.strip():
            names.append(name.strip())
    return names


class PresetLoader:
    """Imports configure preset names next to the loaded build root as profiles."""

    def __init__(self, host: "JsonWorkspaceHost") -> None:
        self._host = host

    def load(self, reload: bool = False) -> int:
        """
        Import presets that are not yet profiles.

        Parameters
        ----------
        reload:
            Accepted for API compatibility; importing is always incremental.

        Returns
        -------
        int
            Number of profiles added.
        """
        root = self._host.loaded_build_root
        if root is None:
            return 0
        directory = Path(root).parent
        known = {p.name for p in self._host.profiles}
        added = 0
        for file_name in PRESET_FILE_NAMES:
            for name in read_configure_preset_names(directory / file_name):
                if name in known:
                    continue
                self._host.profiles.append(HostProfile(name=name, enabled=False))
                known.add(name)
                added += 1
        if added:
            self._host.save()
            logger.debug("Imported %d preset profile(s) from %s", added, directory)
        return added


class JsonWorkspaceHost:
    """
    File-backed host.

    Parameters
    ----------
    state_path:
        Location of the JSON state document. Created on first save.
    clock:
        Source of the current UTC time for reload timestamps.
    """

    def __init__(self, state_path: Path, clock: Callable[[], datetime] = _utc_now) -> None:
        self._state_path = state_path
        self._clock = clock
        self._listeners: list[LoadListener] = []
        self.loaded_build_root: str | None = None
        self.profiles: list[HostProfile] = []
        self.reload_requests = 0
        self.last_reload_requested_at_utc: str | None = None
        self.preset_loader = PresetLoader(self)
        self._load()

    def _load(self) -> None:
        payload = read_json(self._state_path)
        if payload is None:
            return
        if not isinstance(payload, dict):
            raise EntryStoreError(f"Host state must be a JSON object: {self._state_path}")

        root = payload.get("loaded_build_root")
        self.loaded_build_root = root if isinstance(root, str) and root.strip() else None

        profiles: list[HostProfile] = []
        raw_profiles = payload.get("profiles", [])
        for raw in raw_profiles if isinstance(raw_profiles, list) else []:
            if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
                continue
            profiles.append(HostProfile(name=raw["name"], enabled=raw.get("enabled") is True))
        self.profiles = profiles

        requests = payload.get("reload_requests", 0)
        self.reload_requests = requests if isinstance(requests, int) and requests >= 0 else 0
        stamp = payload.get("last_reload_requested_at_utc")
        self.last_reload_requested_at_utc = stamp if isinstance(stamp, str) else None

    def save(self) -> None:
        write_json_atomic(
            self._state_path,
            {
                "schema_version": SCHEMA_VERSION,
                "loaded_build_root": self.loaded_build_root,
                "profiles": [{"name": p.name, "enabled": p.enabled} for p in self.profiles],
                "reload_requests": self.reload_requests,
                "last_reload_requested_at_utc": self.last_reload_requested_at_utc,
            },
        )

    # ---------- Capabilities ----------
    def load_build_root(self, target: str | os.PathLike[str]) -> bool:
        """Record `target` as the loaded build root and notify load listeners."""
        self.loaded_build_root = normalize_path(target)
        self.save()
        for listener in list(self._listeners):
            try:
                listener(target)
            except Exception:
                logger.exception("Load listener failed")
        return True

    def set_profiles(self, profiles: list[HostProfile]) -> None:
        self.profiles = list(profiles)
        self.save()

    def schedule_reload(self) -> None:
        """Record a reload request. Nothing is regenerated."""
        self.reload_requests += 1
        self.last_reload_requested_at_utc = _format_utc(self._clock())
        self.save()

    def add_load_listener(self, listener: LoadListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove
