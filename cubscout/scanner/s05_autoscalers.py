"""S05-S07 Autoscaler references and bounds.

An autoscaler whose target workload does not exist silently does nothing;
one whose minimum equals its maximum cannot scale at all.
"""

from __future__ import annotations

from cubscout.models.findings import Finding, Severity
from cubscout.models.objects import ClusterObject, ResourceRef, nested_int, nested_map, nested_string
from cubscout.scanner.base import Check
from cubscout.snapshot.index import SnapshotIndex

# Scale-target kinds that can be judged; any other kind is assumed to exist.
HPA_TARGET_KINDS = frozenset({"Deployment", "ReplicaSet", "StatefulSet", "ReplicationController"})
VPA_TARGET_KINDS = HPA_TARGET_KINDS | frozenset({"DaemonSet", "Job", "CronJob"})


def _dangling_target(
    check: Check,
    obj: ClusterObject,
    index: SnapshotIndex,
    ref_field: str,
    supported: frozenset[str],
    short_name: str,
) -> list[Finding]:
    ref = nested_map(obj.spec, ref_field)
    kind = nested_string(ref, "kind")
    name = nested_string(ref, "name")
    if not kind or not name or kind not in supported:
        return []
    if not index.observed(kind):
        # Cannot tell a missing target from an uncollected one.
        return []
    if index.get(kind, obj.namespace, name) is not None:
        return []
    return [
        check.finding(
            obj,
            message=f"{short_name} targets non-existent {kind}/{name}",
            verification_command=f"kubectl get {kind.lower()} {name} -n {obj.namespace}",
            target=ResourceRef(kind, obj.namespace, name),
            remediation=f"Delete the {short_name} or create the missing target workload",
        )
    ]


class HPATargetCheck(Check):
    """Flags HorizontalPodAutoscalers whose scale target does not exist."""

    check_id = "S05_hpa_target"
    display_name = "HPA scale target missing"
    severity = Severity.WARNING
    subject_kind = "HorizontalPodAutoscaler"
    required_kinds = ("HorizontalPodAutoscaler",)

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        return _dangling_target(self, obj, index, "scaleTargetRef", HPA_TARGET_KINDS, "HPA")


class HPABoundsCheck(Check):
    """Flags HorizontalPodAutoscalers whose minReplicas equals maxReplicas."""

    check_id = "S06_hpa_bounds"
    display_name = "HPA cannot scale"
    severity = Severity.WARNING
    category = "misconfiguration"
    subject_kind = "HorizontalPodAutoscaler"
    required_kinds = ("HorizontalPodAutoscaler",)

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        max_replicas = nested_int(obj.spec, "maxReplicas")
        if max_replicas is None:
            return []
        # minReplicas defaults to 1 when unset; an explicit 0 is kept
        min_replicas = nested_int(obj.spec, "minReplicas")
        if min_replicas is None:
            min_replicas = 1
        if min_replicas != max_replicas:
            return []
        return [
            self.finding(
                obj,
                message=f"minReplicas ({min_replicas}) = maxReplicas ({max_replicas}); autoscaling is disabled",
                verification_command=f"kubectl get hpa {obj.name} -n {obj.namespace} -o yaml",
                remediation=(
                    "Set different min/max values to enable autoscaling, "
                    "or remove the HPA if static scaling is intended"
                ),
            )
        ]


class VPATargetCheck(Check):
    """Flags VerticalPodAutoscalers whose target does not exist."""

    check_id = "S07_vpa_target"
    display_name = "VPA target missing"
    severity = Severity.WARNING
    subject_kind = "VerticalPodAutoscaler"
    required_kinds = ("VerticalPodAutoscaler",)

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        return _dangling_target(self, obj, index, "targetRef", VPA_TARGET_KINDS, "VPA")
