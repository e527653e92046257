"""S14 Bound PersistentVolumeClaims that no pod mounts.

Only claims in phase Bound are reported: a pending claim holds no volume
yet.  The claim may still hold data, so this is informational.
"""

from __future__ import annotations

from cubscout.models.findings import Finding, Severity
from cubscout.models.objects import ClusterObject, nested_string
from cubscout.scanner.base import Check
from cubscout.scanner.s11_pod_references import claim_refs
from cubscout.snapshot.index import SnapshotIndex


class UnmountedClaimCheck(Check):
    """Flags bound claims that no pod in their namespace mounts."""

    check_id = "S14_pvc_unmounted"
    display_name = "PersistentVolumeClaim not mounted"
    severity = Severity.INFO
    category = "unused"
    subject_kind = "PersistentVolumeClaim"
    required_kinds = ("PersistentVolumeClaim", "Pod")

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        if nested_string(obj.status, "phase") != "Bound":
            return []
        for pod in index.list("Pod", obj.namespace):
            if any(name == obj.name for name, _where in claim_refs(pod)):
                return []
        return [
            self.finding(
                obj,
                message=f"PersistentVolumeClaim {obj.name} is not mounted by any pod",
                verification_command=f"kubectl describe pvc {obj.name} -n {obj.namespace}",
                remediation="Delete the claim if it is no longer needed (it may contain data)",
                details={"volume": nested_string(obj.spec, "volumeName") or ""},
            )
        ]
