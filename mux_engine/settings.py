from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from .errors import ValidationError
from .json_io import write_json_atomic
from .paths import default_data_root

STORE_BACKENDS = ("sqlite", "json")


@dataclass(frozen=True, slots=True)
class MuxSettings:
    """
    Persisted buildmux settings.

    Notes
    -----
    Settings are shared by all workspaces under one data root. They only
    control defaults; the entry collection itself lives in each workspace.
    """

    store_backend: str  # "sqlite" | "json"
    activation_settle_ms: int
    detect_attempts: int
    detect_spacing_ms: int
    quick_pick_limit: int

    @staticmethod
    def defaults() -> "MuxSettings":
        return MuxSettings(
            store_backend="sqlite",
            activation_settle_ms=100,
            detect_attempts=5,
            detect_spacing_ms=200,
            quick_pick_limit=9,
        )

    def with_value(self, key: str, raw: str) -> "MuxSettings":
        """
        Return a copy with `key` set from its text form.

        Raises
        ------
        ValidationError
            If the key is unknown or the value is out of range.
        """
        names = {f.name for f in fields(self)}
        if key not in names:
            raise ValidationError(f"Unknown setting {key!r}. Known: {', '.join(sorted(names))}")
        if key == "store_backend":
            if raw not in STORE_BACKENDS:
                raise ValidationError(f"store_backend must be one of {', '.join(STORE_BACKENDS)}.")
            return replace(self, store_backend=raw)
        try:
            value = int(raw)
        except ValueError as exc:
            raise ValidationError(f"{key} must be an integer.") from exc
        if value < 0 or (key == "quick_pick_limit" and value < 1):
            raise ValidationError(f"{key} is out of range: {value}")
        return replace(self, **{key: value})

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _settings_path(data_root: Path | None) -> Path:
    root = default_data_root() if data_root is None else data_root
    return root / "buildmux_settings.json"


def _int_or(payload: dict[str, Any], key: str, default: int, minimum: int = 0) -> int:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        return default
    return value


def load_settings(*, data_root: Path | None) -> MuxSettings:
    """
    Load settings from disk.

    Parameters
    ----------
    data_root:
        buildmux data root. If None, the default is used.

    Returns
    -------
    MuxSettings
        Loaded settings, or defaults if missing/unreadable. Invalid individual
        values fall back to their defaults.
    """
    defaults = MuxSettings.defaults()
    path = _settings_path(data_root)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return defaults
    except (OSError, ValueError):
        return defaults
    if not isinstance(payload, dict):
        return defaults

    store_backend = payload.get("store_backend", defaults.store_backend)
    if store_backend not in STORE_BACKENDS:
        store_backend = defaults.store_backend

    return MuxSettings(
        store_backend=str(store_backend),
        activation_settle_ms=_int_or(payload, "activation_settle_ms", defaults.activation_settle_ms),
        detect_attempts=_int_or(payload, "detect_attempts", defaults.detect_attempts),
        detect_spacing_ms=_int_or(payload, "detect_spacing_ms", defaults.detect_spacing_ms),
        quick_pick_limit=_int_or(payload, "quick_pick_limit", defaults.quick_pick_limit, minimum=1),
    )


def save_settings(*, data_root: Path | None, settings: MuxSettings) -> None:
    """Save settings to disk."""
    write_json_atomic(_settings_path(data_root), settings.as_dict())
