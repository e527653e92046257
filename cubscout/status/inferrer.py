"""Per-kind health inference from status documents.

Rules are evaluated in order and the first applicable one wins:

1. a ``Ready`` condition,
2. a pod-style ``phase`` field,
3. kind-specific reconciliation (replica counts, health/sync axes),
4. otherwise Unknown.

Everything here reads literal status documents; nothing talks to a cluster.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from cubscout.models.objects import ClusterObject, nested_int, nested_list, nested_string
from cubscout.models.status import StatusState

_PHASES: dict[str, StatusState] = {
    "Running": StatusState.READY,
    "Succeeded": StatusState.READY,
    "Bound": StatusState.READY,
    "Active": StatusState.READY,
    "Pending": StatusState.PENDING,
    "ContainerCreating": StatusState.PENDING,
    "Failed": StatusState.FAILED,
    "Error": StatusState.FAILED,
    "CrashLoopBackOff": StatusState.FAILED,
}


# ---------------------------------------------------------------------------
# Condition helpers
# ---------------------------------------------------------------------------


def ready_condition(obj: ClusterObject) -> dict[str, Any] | None:
    """The first condition of type ``Ready``, if the object exposes one."""
    for cond in nested_list(obj.status, "conditions") or []:
        if isinstance(cond, dict) and cond.get("type") == "Ready":
            return cond
    return None


def condition_reason(obj: ClusterObject) -> str:
    return nested_string(ready_condition(obj), "reason") or ""


def condition_message(obj: ClusterObject) -> str:
    """The Ready condition's message, verbatim."""
    return nested_string(ready_condition(obj), "message") or ""


def status_message(obj: ClusterObject) -> str:
    """Best human explanation of the object's state.

    The Ready condition message when there is one; for Argo applications the
    operation message, falling back to the health message.
    """
    message = condition_message(obj)
    if message:
        return message
    if obj.kind == "Application":
        return nested_string(obj.status, "operationState", "message") or nested_string(
            obj.status, "health", "message"
        ) or ""
    return ""


# ---------------------------------------------------------------------------
# Kind rules
# ---------------------------------------------------------------------------


def _desired_replicas(obj: ClusterObject) -> int:
    # Defaults to 1 only when the field is unset; an explicit 0 stays 0.
    desired = nested_int(obj.spec, "replicas")
    return 1 if desired is None else desired


def _status_count(obj: ClusterObject, field_name: str) -> int:
    return nested_int(obj.status, field_name) or 0


def _deployment_status(obj: ClusterObject) -> StatusState:
    desired = _desired_replicas(obj)
    ready = _status_count(obj, "readyReplicas")
    available = _status_count(obj, "availableReplicas")
    if ready == desired and available == desired:
        return StatusState.READY
    if _status_count(obj, "replicas") == 0 and desired > 0:
        return StatusState.PENDING
    return StatusState.NOT_READY


def _statefulset_status(obj: ClusterObject) -> StatusState:
    if _status_count(obj, "readyReplicas") == _desired_replicas(obj):
        return StatusState.READY
    if _status_count(obj, "replicas") == 0:
        return StatusState.PENDING
    return StatusState.NOT_READY


def _daemonset_status(obj: ClusterObject) -> StatusState:
    desired = _status_count(obj, "desiredNumberScheduled")
    ready = _status_count(obj, "numberReady")
    if desired > 0 and ready == desired:
        return StatusState.READY
    if ready == 0:
        return StatusState.PENDING
    return StatusState.NOT_READY


def _application_status(obj: ClusterObject) -> StatusState:
    health = nested_string(obj.status, "health", "status") or ""
    sync = nested_string(obj.status, "sync", "status") or ""
    if health == "Healthy" and sync == "Synced":
        return StatusState.READY
    if health in ("Degraded", "Missing"):
        return StatusState.FAILED
    if sync == "OutOfSync" or health == "Progressing":
        return StatusState.NOT_READY
    return StatusState.UNKNOWN


KIND_RULES: dict[str, Callable[[ClusterObject], StatusState]] = {
    "Deployment": _deployment_status,
    "ReplicaSet": _deployment_status,
    "StatefulSet": _statefulset_status,
    "DaemonSet": _daemonset_status,
    "Application": _application_status,
}


def infer(obj: ClusterObject) -> StatusState:
    """Infer the health of ``obj``.  Total: every input yields a state."""
    if obj.status is None:
        return StatusState.UNKNOWN

    cond = ready_condition(obj)
    if cond is not None:
        value = cond.get("status")
        if value == "True":
            return StatusState.READY
        if value == "False":
            return StatusState.NOT_READY
        return StatusState.PENDING

    phase = nested_string(obj.status, "phase")
    if phase in _PHASES:
        return _PHASES[phase]

    rule = KIND_RULES.get(obj.kind)
    if rule is not None:
        return rule(obj)
    return StatusState.UNKNOWN
