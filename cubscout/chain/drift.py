"""Drift between an object's live state and its last declared state.

``kubectl apply`` records what it sent in the
``kubectl.kubernetes.io/last-applied-configuration`` annotation.  Every field
in that record is compared with the live object; fields the record does not
mention are server defaults or other writers' fields and are not drift.

Only the parts a ClusterObject keeps are judged: labels, annotations,
``spec`` and ConfigMap data.  Secret payloads are redacted at collection
time and never compared.
"""

from __future__ import annotations

import json
from typing import Any

from cubscout.models.chain import FieldDrift
from cubscout.models.objects import ClusterObject
from cubscout.observability.logging import get_logger

_logger = get_logger("chain.drift")

LAST_APPLIED_ANNOTATION = "kubectl.kubernetes.io/last-applied-configuration"

# Annotations written by controllers rather than by the applier.
_IGNORED_ANNOTATIONS = frozenset({
    LAST_APPLIED_ANNOTATION,
    "deployment.kubernetes.io/revision",
})


def last_applied(obj: ClusterObject) -> dict[str, Any] | None:
    """The decoded last-applied record, or ``None`` when absent or unreadable."""
    raw = obj.annotation(LAST_APPLIED_ANNOTATION)
    if not raw:
        return None
    try:
        declared = json.loads(raw)
    except json.JSONDecodeError as exc:
        _logger.debug("last_applied_unreadable", object=str(obj.key), error=exc.msg)
        return None
    return declared if isinstance(declared, dict) else None


def _same_scalar(declared: Any, live: Any) -> bool:
    # True == 1 in Python; a boolean only equals a boolean
    if isinstance(declared, bool) or isinstance(live, bool):
        return type(declared) is type(live) and declared == live
    return declared == live


def _empty(value: Any) -> bool:
    return value is None or value == {} or value == []


def _compare(path: str, declared: Any, live: Any, out: list[FieldDrift]) -> None:
    if _empty(declared) and _empty(live):
        return
    if isinstance(declared, dict):
        if not isinstance(live, dict):
            out.append(FieldDrift(path, declared, live))
            return
        for key in sorted(declared):
            _compare(f"{path}.{key}", declared[key], live.get(key), out)
        return
    if isinstance(declared, list):
        if not isinstance(live, list) or len(declared) != len(live):
            out.append(FieldDrift(path, declared, live))
            return
        for position, (want, have) in enumerate(zip(declared, live, strict=True)):
            _compare(f"{path}[{position}]", want, have, out)
        return
    if not _same_scalar(declared, live):
        out.append(FieldDrift(path, declared, live))


def detect_drift(obj: ClusterObject) -> tuple[FieldDrift, ...]:
    """Declared fields whose live value differs, in a stable order.

    Empty when the object carries no readable last-applied record.
    """
    declared = last_applied(obj)
    if declared is None:
        return ()
    drift: list[FieldDrift] = []

    metadata = declared.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    labels = metadata.get("labels")
    if isinstance(labels, dict):
        _compare("metadata.labels", labels, obj.labels, drift)
    annotations = metadata.get("annotations")
    if isinstance(annotations, dict):
        wanted = {k: v for k, v in annotations.items() if k not in _IGNORED_ANNOTATIONS}
        _compare("metadata.annotations", wanted, obj.annotations, drift)

    if "spec" in declared:
        _compare("spec", declared["spec"], obj.spec, drift)
    if obj.kind != "Secret":
        for data_field in ("data", "binaryData"):
            if data_field in declared:
                _compare(data_field, declared[data_field], obj.data.get(data_field), drift)

    if drift:
        _logger.debug("drift_detected", object=str(obj.key), fields=len(drift))
    return tuple(drift)
