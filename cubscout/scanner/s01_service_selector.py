"""S01 Service selector matches no pods.

A Service whose selector matches no pod in its own namespace routes traffic
nowhere.  Services with an empty selector (externally managed endpoints) and
ExternalName services are out of scope.
"""

from __future__ import annotations

from cubscout.models.findings import Finding, Severity
from cubscout.models.objects import ClusterObject, ResourceRef, nested_string, nested_value
from cubscout.observability.logging import get_logger
from cubscout.scanner.base import Check
from cubscout.snapshot.index import SnapshotIndex
from cubscout.snapshot.selectors import LabelSelector

_logger = get_logger("scanner.s01_service_selector")


class ServiceSelectorCheck(Check):
    """Flags Services whose selector matches zero pods in their namespace."""

    check_id = "S01_service_selector"
    display_name = "Service selector matches no pods"
    severity = Severity.WARNING
    subject_kind = "Service"
    required_kinds = ("Service", "Pod")

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        if nested_string(obj.spec, "type") == "ExternalName":
            return []
        selector = LabelSelector.from_map(nested_value(obj.spec, "selector"))
        if selector.is_empty:
            return []
        if index.select("Pod", obj.namespace, selector):
            return []

        rendered = selector.render()
        message = f"Service selector matches no pods: {rendered}"
        details: dict[str, str] = {"selector": rendered}
        elsewhere = index.namespaces_matching("Pod", selector, exclude=obj.namespace)
        if elsewhere:
            details["cross_namespace_matches"] = ",".join(elsewhere)
            message += f" (matching pods exist only in namespace(s): {', '.join(elsewhere)})"

        _logger.debug("s01_match", service=obj.name, namespace=obj.namespace, selector=rendered)
        return [
            self.finding(
                obj,
                message=message,
                verification_command=f"kubectl get pods -n {obj.namespace} -l {selector.to_query()}",
                target=ResourceRef("Pod", obj.namespace, rendered),
                remediation="Check the Service selector against the pod template labels of the intended workload",
                details=details,
            )
        ]
