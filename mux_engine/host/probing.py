"""
Capability probing against a host whose API shape is not fixed.

An integration point is described by an ordered tuple of
`IntegrationStrategy` objects. Each strategy pairs a cheap predicate ("does
this host look like it supports me?") with an accessor that produces the
capability. `probe` tries them in order and returns the first non-None result.

Notes
-----
- Probing never raises. A strategy whose predicate or accessor raises is
  treated as unavailable and logged at debug level.
- Helpers in this module only look up public attributes and call them; they do
  not import host modules or reach into private state.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class IntegrationStrategy(Generic[T]):
    """
    One way of obtaining a capability from a host object.

    Attributes
    ----------
    name:
        Diagnostic name, logged when the strategy is selected.
    predicate:
        Returns True if the strategy applies to the host.
    accessor:
        Produces the capability, or None if it is not available after all.
    """

    name: str
    predicate: Callable[[Any], bool]
    accessor: Callable[[Any], T | None]


@dataclass(frozen=True, slots=True)
class ProbeResult(Generic[T]):
    """The capability found by `probe` and the strategy that produced it."""

    strategy: str
    value: T


def probe(
    target: Any, strategies: Sequence[IntegrationStrategy[T]], *, purpose: str
) -> ProbeResult[T] | None:
    """
    Return the first capability produced by `strategies` for `target`.

    Parameters
    ----------
    target:
        Host object to inspect. None yields None.
    strategies:
        Ordered strategies.
    purpose:
        Short label for diagnostics (e.g. "profile collection").
    """
    if target is None:
        return None
    for strategy in strategies:
        try:
            if not strategy.predicate(target):
                continue
            value = strategy.accessor(target)
        except Exception as exc:
            logger.debug("Strategy %s for %s failed: %s", strategy.name, purpose, exc, exc_info=True)
            continue
        if value is not None:
            logger.debug("Using strategy %s for %s", strategy.name, purpose)
            return ProbeResult(strategy=strategy.name, value=value)
    logger.debug("No strategy available for %s on %s", purpose, type(target).__name__)
    return None


def find_member(target: Any, name: str) -> Any | None:
    """Return a public attribute of `target`, or None when absent."""
    if target is None or name.startswith("_"):
        return None
    try:
        return getattr(target, name, None)
    except Exception:
        return None


def find_callable(target: Any, *names: str) -> Callable[..., Any] | None:
    """Return the first callable public attribute among `names`."""
    for name in names:
        member = find_member(target, name)
        if callable(member):
            return member
    return None


def has_callable(*names: str) -> Callable[[Any], bool]:
    """Predicate factory: the target exposes any of the callables `names`."""
    return lambda target: find_callable(target, *names) is not None


def has_member(*names: str) -> Callable[[Any], bool]:
    """Predicate factory: the target exposes any non-None attribute among `names`."""
    return lambda target: any(find_member(target, n) is not None for n in names)


def accepts_positional(func: Callable[..., Any]) -> bool:
    """Return True if `func` can be called with one positional argument."""
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return False
    for param in sig.parameters.values():
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD, param.VAR_POSITIONAL):
            return True
    return False


def call_with_optional_flag(func: Callable[..., Any], flag: bool) -> Any:
    """
    Call `func(flag)` when it takes a positional parameter, else `func()`.

    Host refresh and reload operations differ between versions in whether they
    take a boolean "force" argument.
    """
    if accepts_positional(func):
        return func(flag)
    return func()


def member_value(target: Any, *names: str) -> Any | None:
    """
    Return the value of the first available member among `names`.

    Callable members are invoked with no arguments (getter style); plain
    attributes are returned as-is. Mapping targets are looked up by key.
    """
    if isinstance(target, dict):
        for name in names:
            if name in target and target[name] is not None:
                return target[name]
        return None
    for name in names:
        member = find_member(target, name)
        if member is None:
            continue
        if callable(member):
            try:
                value = member()
            except Exception:
                continue
        else:
            value = member
        if value is not None:
            return value
    return None
