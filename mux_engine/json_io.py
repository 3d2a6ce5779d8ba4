"""
Atomic JSON helpers.

Design constraints
------------------
- Writes are atomic (temp file + replace) so that a crash never leaves a
  half-written entry store or host state document behind.
- Serialization is deterministic for a given payload.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .errors import EntryStoreError


@dataclass(frozen=True, slots=True)
class JsonWriteOptions:
    """Options controlling JSON serialization."""

    indent: int = 2
    sort_keys: bool = False
    ensure_ascii: bool = False


def write_json_atomic(
    json_path: Path,
    payload: Mapping[str, Any],
    *,
    options: JsonWriteOptions | None = None,
) -> None:
    """
    Write JSON atomically to disk.

    Raises
    ------
    EntryStoreError
        If the document cannot be written.
    """
    opts = options or JsonWriteOptions()
    json_path = json_path.expanduser()
    json_path.parent.mkdir(parents=True, exist_ok=True)

    temp_path = json_path.with_suffix(json_path.suffix + ".tmp")
    try:
        with temp_path.open("w", encoding="utf-8", newline="\n") as handle:
            json.dump(
                payload,
                handle,
                indent=opts.indent,
                sort_keys=opts.sort_keys,
                ensure_ascii=opts.ensure_ascii,
            )
            handle.write("\n")
        os.replace(temp_path, json_path)
    except OSError as exc:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise EntryStoreError(f"Failed to write JSON document: {json_path}") from exc


def read_json(json_path: Path) -> Any | None:
    """
    Read a JSON document.

    Returns
    -------
    Any | None
        Parsed payload, or None when the file does not exist.

    Raises
    ------
    EntryStoreError
        If the file exists but cannot be read or parsed.
    """
    try:
        raw = json_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        raise EntryStoreError(f"Failed to read JSON document: {json_path}") from exc

    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise EntryStoreError(f"Invalid JSON in {json_path}: {exc}") from exc
