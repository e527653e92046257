"""S10 NetworkPolicy podSelector matches no pods.

Evaluated with full matchLabels + matchExpressions semantics.  The finding
renders the actual selector so an operator can see which clause misses.
"""

from __future__ import annotations

from cubscout.models.findings import Finding, Severity
from cubscout.models.objects import ClusterObject, ResourceRef, nested_map
from cubscout.observability.logging import get_logger
from cubscout.scanner.base import Check
from cubscout.snapshot.index import SnapshotIndex
from cubscout.snapshot.selectors import LabelSelector

_logger = get_logger("scanner.s10_network_policy")


class NetworkPolicySelectorCheck(Check):
    """Flags NetworkPolicies whose non-empty podSelector matches zero pods."""

    check_id = "S10_netpol_selector"
    display_name = "NetworkPolicy selects no pods"
    severity = Severity.INFO
    subject_kind = "NetworkPolicy"
    required_kinds = ("NetworkPolicy", "Pod")

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        # An empty podSelector deliberately selects every pod in the namespace.
        selector = LabelSelector.from_spec(nested_map(obj.spec, "podSelector"))
        if selector.is_empty:
            return []
        if index.select("Pod", obj.namespace, selector):
            return []

        rendered = selector.render()
        _logger.debug("s10_match", policy=obj.name, namespace=obj.namespace, selector=rendered)
        return [
            self.finding(
                obj,
                message=f"NetworkPolicy podSelector matches no pods: {rendered}",
                verification_command=f"kubectl get pods -n {obj.namespace} --selector='{selector.to_query()}'",
                target=ResourceRef("Pod", obj.namespace, rendered),
                remediation="Verify pods with matching labels exist or update the NetworkPolicy",
                details={"selector": rendered},
            )
        ]
