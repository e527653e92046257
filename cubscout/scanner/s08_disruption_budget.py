"""S08-S09 PodDisruptionBudget configuration.

A budget that requires every replica to stay up (minAvailable "100%" or
equal to the full replica count, or maxUnavailable 0) blocks all voluntary
evictions, so node drains hang.  A budget that selects no pods protects
nothing.
"""

from __future__ import annotations

from typing import Any

from cubscout.models.findings import Finding, Severity
from cubscout.models.objects import ClusterObject, ResourceRef, nested_int, nested_map, nested_value
from cubscout.scanner.base import Check
from cubscout.snapshot.index import SnapshotIndex
from cubscout.snapshot.selectors import LabelSelector

# Workload kinds whose pod templates a budget can cover.
_WORKLOAD_KINDS = ("Deployment", "StatefulSet", "ReplicaSet", "ReplicationController")

_BLOCKING_MAX_UNAVAILABLE = (0, "0", "0%")


def _as_count(value: Any) -> int | None:
    """An IntOrString that is a plain count: 3 or "3"; ``None`` for percentages."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def full_replica_count(pdb: ClusterObject, selector: LabelSelector, index: SnapshotIndex) -> int | None:
    """Replicas covered by the budget, or ``None`` when it cannot be determined.

    Sums the desired replicas of workloads whose pod template labels match
    the selector, else uses ``status.expectedPods``, else counts matching pods.
    """
    total = 0
    matched = False
    for kind in _WORKLOAD_KINDS:
        for workload in index.list(kind, pdb.namespace):
            # ReplicaSets owned by a Deployment are already counted through it.
            if kind == "ReplicaSet" and workload.controller_reference() is not None:
                continue
            template_labels = nested_map(workload.spec, "template", "metadata", "labels") or {}
            if selector.matches(template_labels):
                matched = True
                replicas = nested_int(workload.spec, "replicas")
                total += 1 if replicas is None else replicas
    if matched:
        return total
    expected = nested_int(pdb.status, "expectedPods")
    if expected is not None:
        return expected
    if index.observed("Pod"):
        return len(index.select("Pod", pdb.namespace, selector))
    return None


class DisruptionBudgetBlocksEvictionCheck(Check):
    """Flags budgets that allow zero voluntary disruptions by configuration."""

    check_id = "S08_pdb_blocks_eviction"
    display_name = "PDB blocks all evictions"
    severity = Severity.WARNING
    category = "misconfiguration"
    subject_kind = "PodDisruptionBudget"
    required_kinds = ("PodDisruptionBudget",)

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        message = self._blocking_reason(obj, index)
        if message is None:
            return []

        severity = self.severity
        details: dict[str, str] = {}
        allowed = nested_int(obj.status, "disruptionsAllowed")
        healthy = nested_int(obj.status, "currentHealthy") or 0
        if allowed == 0 and healthy > 0:
            severity = Severity.CRITICAL
            desired = nested_int(obj.status, "desiredHealthy") or 0
            details["disruptions_allowed"] = "0"
            message += f" (currently blocking: currentHealthy {healthy}, desiredHealthy {desired})"

        return [
            self.finding(
                obj,
                message=message,
                verification_command=f"kubectl get pdb {obj.name} -n {obj.namespace} -o yaml",
                severity=severity,
                remediation="Reduce minAvailable below the replica count or set maxUnavailable to at least 1",
                details=details,
            )
        ]

    def _blocking_reason(self, obj: ClusterObject, index: SnapshotIndex) -> str | None:
        min_available = nested_value(obj.spec, "minAvailable")
        if min_available == "100%":
            return "minAvailable: 100% blocks all evictions; node drains will fail"

        count = _as_count(min_available)
        if count is not None and count > 0:
            selector = LabelSelector.from_spec(nested_map(obj.spec, "selector"))
            replicas = full_replica_count(obj, selector, index)
            if replicas is not None and replicas > 0 and count >= replicas:
                return (
                    f"minAvailable: {count} covers all {replicas} selected replicas; "
                    "blocks all evictions; node drains will fail"
                )

        max_unavailable = nested_value(obj.spec, "maxUnavailable")
        if not isinstance(max_unavailable, bool) and max_unavailable in _BLOCKING_MAX_UNAVAILABLE:
            return "maxUnavailable: 0 blocks all evictions; node drains will fail"
        return None


class DisruptionBudgetSelectorCheck(Check):
    """Flags budgets whose selector matches no pods in their namespace."""

    check_id = "S09_pdb_selector"
    display_name = "PDB selector matches no pods"
    severity = Severity.INFO
    subject_kind = "PodDisruptionBudget"
    required_kinds = ("PodDisruptionBudget", "Pod")

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        selector = LabelSelector.from_spec(nested_map(obj.spec, "selector"))
        if selector.is_empty or index.select("Pod", obj.namespace, selector):
            return []
        rendered = selector.render()
        return [
            self.finding(
                obj,
                message=f"PodDisruptionBudget selector matches no pods: {rendered}",
                verification_command=f"kubectl get pods -n {obj.namespace} --selector='{selector.to_query()}'",
                target=ResourceRef("Pod", obj.namespace, rendered),
                remediation="Update the PDB selector to match the workload's pod labels or delete the PDB",
            )
        ]
