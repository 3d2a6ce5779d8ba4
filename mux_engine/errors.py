"""
Domain exceptions for buildmux.

Notes
-----
Engine code raises only these exceptions for expected failure modes. Host
introspection failures are never raised to callers; they are downgraded to
logged no-ops at the probing boundary.
"""

from __future__ import annotations


class MuxError(RuntimeError):
    """Base exception for all buildmux domain failures."""


class ValidationError(MuxError):
    """Raised when input to a store mutation is malformed. The mutation has no effect."""


class UnknownEntryError(MuxError):
    """Raised when an operation addresses a path that is not registered."""


class EntryStoreError(MuxError):
    """Raised when the persisted entry collection cannot be read or written."""


class TargetNotFoundError(MuxError):
    """Raised when a stored path cannot be resolved to an openable target."""


class HostCapabilityMissingError(MuxError):
    """Raised when a required host integration point could not be discovered."""


class PatternCompileError(MuxError):
    """
    Raised when a single profile pattern fails to compile.

    Attributes
    ----------
    pattern:
        The offending pattern text.
    """

    def __init__(self, pattern: str, message: str) -> None:
        super().__init__(f"Invalid pattern {pattern!r}: {message}")
        self.pattern = pattern
