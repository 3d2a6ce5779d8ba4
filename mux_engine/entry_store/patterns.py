"""
Pattern normalization and compilation.

Profile patterns are regular expressions applied as case-insensitive,
unanchored searches against host profile names. This module performs no host
access.

Invariants
----------
- Patterns are stripped; empty patterns are dropped.
- Order is preserved.
- A pattern that fails to compile never aborts the others.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from ..errors import PatternCompileError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompiledPatterns:
    """
    Result of compiling a pattern list.

    Attributes
    ----------
    compiled:
        Successfully compiled expressions, in input order.
    skipped:
        Patterns that failed to compile, in input order.
    """

    compiled: tuple[re.Pattern[str], ...]
    skipped: tuple[str, ...]

    def matches(self, name: str) -> bool:
        """Return True if any compiled pattern is found anywhere in `name`."""
        return any(p.search(name) is not None for p in self.compiled)


def normalize_patterns(values: Iterable[str] | None) -> tuple[str, ...]:
    """
    Normalize user-authored patterns.

    Parameters
    ----------
    values:
        Raw patterns from user input or a persisted record. None is treated as
        an empty list.

    Returns
    -------
    tuple[str, ...]
        Stripped, non-empty patterns, preserving order.
    """
    if values is None:
        return ()
    out: list[str] = []
    for raw in values:
        if raw is None:
            continue
        cleaned = str(raw).strip()
        if cleaned:
            out.append(cleaned)
    return tuple(out)


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile one pattern for case-insensitive search.

    Raises
    ------
    PatternCompileError
        If the pattern is not a valid regular expression.
    """
    try:
        return re.compile(pattern, re.IGNORECASE)
    except (re.error, RecursionError, OverflowError) as exc:
        raise PatternCompileError(pattern, str(exc)) from exc


def compile_patterns(patterns: Sequence[str]) -> CompiledPatterns:
    """
    Compile a pattern list, skipping invalid patterns.

    Skipped patterns are logged at warning level.
    """
    compiled: list[re.Pattern[str]] = []
    skipped: list[str] = []
    for pattern in patterns:
        try:
            compiled.append(compile_pattern(pattern))
        except PatternCompileError as exc:
            logger.warning("Skipping profile pattern: %s", exc)
            skipped.append(pattern)
    return CompiledPatterns(compiled=tuple(compiled), skipped=tuple(skipped))


def pattern_error(pattern: str) -> str | None:
    """Return a human-readable compile error for `pattern`, or None if it compiles."""
    try:
        compile_pattern(pattern)
    except PatternCompileError as exc:
        return str(exc)
    return None
