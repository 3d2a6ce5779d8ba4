"""
Pattern-driven profile enabling.

Given a host and an ordered list of regular expressions, enable every host
profile whose name matches at least one expression and leave all other
profiles untouched.

Algorithm
---------
1. Empty pattern list: return immediately.
2. Compile each pattern case-insensitively; invalid patterns are skipped.
3. Ask the host to import build presets into profiles (best effort).
4. Discover the profile collection through capability probing. None found is
   reported as zero flips, not as an error.
5. Resolve each profile's name (primary name, then display name).
6. A profile matches if any pattern is found anywhere in its name.
7. Flip matching profiles that are not already enabled. A profile whose
   writer raises is logged and skipped; the others still go through.
8. Write the collection back to the host.
9. Ask the host to schedule a reload (not awaited).
10. Report what was flipped.

Notes
-----
- Re-running with the same patterns against an unchanged host flips nothing.
- The host profile collection is borrowed for one invocation and never cached.
- No exception escapes `enable_matching_profiles`; failures are logged and
  reflected in the returned report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from .entry_store.patterns import compile_patterns, normalize_patterns
from .host import capabilities
from .scheduling import Scheduler

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EnableReport:
    """
    Outcome of one profile-enabling pass.

    Attributes
    ----------
    flipped:
        Names of profiles switched from disabled to enabled, in host order.
    matched:
        Names of all profiles matched by at least one pattern.
    skipped_patterns:
        Patterns that failed to compile.
    profiles_found:
        True if a profile collection was discovered on the host.
    presets_refreshed:
        True if the host accepted a preset import request.
    write_back:
        Name of the write-back path used, if any.
    reload_requested:
        True if a reload was requested from the host.
    refused:
        Names of matched profiles whose enable writer raised.
    error:
        Message of an unexpected failure that ended the pass early.
    """

    flipped: list[str] = field(default_factory=list)
    matched: list[str] = field(default_factory=list)
    skipped_patterns: tuple[str, ...] = ()
    profiles_found: bool = False
    presets_refreshed: bool = False
    write_back: str | None = None
    reload_requested: bool = False
    refused: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def count(self) -> int:
        """Number of profiles flipped in this pass."""
        return len(self.flipped)


def enable_matching_profiles(host: Any, patterns: Sequence[str]) -> EnableReport:
    """
    Enable host profiles whose names match any of `patterns`.

    Parameters
    ----------
    host:
        Host object; its API is discovered by capability probing.
    patterns:
        Regular expressions, applied as case-insensitive searches.

    Returns
    -------
    EnableReport
        What was matched and flipped. Never raises.
    """
    report = EnableReport()
    cleaned = normalize_patterns(patterns)
    if not cleaned:
        return report

    compiled = compile_patterns(cleaned)
    report.skipped_patterns = compiled.skipped
    if not compiled.compiled:
        logger.info("No usable profile patterns; nothing to enable.")
        return report

    try:
        report.presets_refreshed = capabilities.refresh_presets(host)

        settings = capabilities.find_profile_settings(host)
        found = capabilities.find_profiles(settings.value) if settings is not None else None
        if settings is None or found is None:
            logger.warning("Could not obtain a profile collection from the host; enabled 0 profiles.")
            return report
        report.profiles_found = True
        profiles = found.value

        for profile in profiles:
            name = capabilities.profile_name(profile)
            if name is None or not compiled.matches(name):
                continue
            report.matched.append(name)
            if capabilities.profile_enabled(profile) is True:
                continue
            try:
                wrote = capabilities.enable_profile(profile)
            except Exception:
                logger.warning("Profile %r refused to be enabled", name, exc_info=True)
                report.refused.append(name)
                continue
            if wrote:
                report.flipped.append(name)
            else:
                logger.debug("Profile %r matched but exposes no enable writer", name)

        report.write_back = capabilities.write_back_profiles(settings.value, profiles)
        report.reload_requested = capabilities.schedule_reload(host)
    except Exception as exc:
        logger.warning("Failed to enable profiles through the host API", exc_info=True)
        report.error = str(exc) or type(exc).__name__
        return report

    logger.info("Enabled %d profile(s) by pattern: %s", report.count, ", ".join(report.flipped))
    return report


class ProfileEnabler:
    """
    Runs `enable_matching_profiles` on a later scheduler turn.

    Parameters
    ----------
    host:
        Host object passed to each pass.
    scheduler:
        Loop used to defer the pass.
    """

    def __init__(self, host: Any, scheduler: Scheduler) -> None:
        self._host = host
        self._scheduler = scheduler
        self.last_report: EnableReport | None = None

    def schedule(
        self,
        patterns: Sequence[str],
        on_done: Callable[[EnableReport], None] | None = None,
        *,
        delay_ms: int = 0,
    ) -> bool:
        """
        Queue a profile-enabling pass.

        Returns
        -------
        bool
            False when `patterns` is empty: nothing is queued and `on_done` is
            not called.
        """
        cleaned = normalize_patterns(patterns)
        if not cleaned:
            return False

        def _run() -> None:
            report = enable_matching_profiles(self._host, cleaned)
            self.last_report = report
            if on_done is not None:
                on_done(report)

        self._scheduler.call_later(delay_ms, _run)
        return True
