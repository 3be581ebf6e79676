"""
errors.py

Failure taxonomy for the delay pipeline.

Structural problems (bad roster, bad grouping key) are raised.
Dirty rows are never raised: they are dropped and tallied under a
RejectionReason in the cleaning report.
"""

from __future__ import annotations

from enum import Enum


class StreetcarDelayError(ValueError):
    """Base class for misconfigured-run errors."""


class EmptyRoster(StreetcarDelayError):
    """The line roster has no entries, so no record could ever be kept."""


class InvalidRoster(StreetcarDelayError):
    """The line roster maps a line to an unknown service type."""


class InvalidDimension(StreetcarDelayError):
    """An aggregation was requested on an unsupported grouping key."""

    def __init__(self, name: str, allowed: tuple[str, ...] = ()):
        self.name = name
        self.allowed = allowed
        msg = f"unsupported grouping dimension {name!r}"
        if allowed:
            msg += f" (expected one of: {', '.join(allowed)})"
        super().__init__(msg)


class RejectionReason(str, Enum):
    """Why a raw row was left out of the cleaned table."""

    MALFORMED_RECORD = "MalformedRecord"
    UNKNOWN_LINE = "UnknownLine"
    BELOW_MIN_DELAY = "BelowMinDelay"
    ABOVE_MAX_DELAY = "AboveMaxDelay"
