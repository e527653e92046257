"""Health inference for cluster objects.

Exposes:
    infer             -- StatusState for one object.
    ready_condition   -- the object's Ready condition document, if any.
    condition_reason  -- Ready condition reason.
    condition_message -- Ready condition message, verbatim.
    status_message    -- best available explanation of the object's state.
"""

from cubscout.status.inferrer import (
    KIND_RULES,
    condition_message,
    condition_reason,
    infer,
    ready_condition,
    status_message,
)

__all__ = [
    "KIND_RULES",
    "condition_message",
    "condition_reason",
    "infer",
    "ready_condition",
    "status_message",
]
