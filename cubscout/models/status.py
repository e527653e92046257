"""Health state of a cluster object."""

from __future__ import annotations

from enum import StrEnum


class StatusState(StrEnum):
    """Inferred health.  The states are independent; there is no ordering."""

    READY = "Ready"
    NOT_READY = "NotReady"
    FAILED = "Failed"
    PENDING = "Pending"
    UNKNOWN = "Unknown"


# States that mark a chain link as the point where delivery breaks.
BROKEN_STATES = frozenset({StatusState.NOT_READY, StatusState.FAILED, StatusState.PENDING})
