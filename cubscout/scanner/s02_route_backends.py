"""S02-S04 Traffic routes that point at missing Services.

Covers Ingress (default backend and every path), Gateway API HTTPRoute
backendRefs, and OpenShift Route targets.  A Service of type ExternalName
is a Service object and therefore counts as existing.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from cubscout.models.findings import Finding, Severity
from cubscout.models.objects import ClusterObject, ResourceRef, nested_list, nested_map, nested_string
from cubscout.scanner.base import Check
from cubscout.snapshot.index import SnapshotIndex


def ingress_service_name(backend: dict[str, Any] | None) -> str:
    """Service name of an Ingress backend (``service.name`` or legacy ``serviceName``)."""
    return nested_string(backend, "service", "name") or nested_string(backend, "serviceName") or ""


def _missing_service_findings(
    check: Check,
    obj: ClusterObject,
    index: SnapshotIndex,
    refs: Iterator[tuple[str, str, str]],
) -> list[Finding]:
    """One finding per distinct missing (namespace, service); ``refs`` yields (where, namespace, name)."""
    findings: list[Finding] = []
    reported: set[tuple[str, str]] = set()
    for where, namespace, name in refs:
        if not name or (namespace, name) in reported:
            continue
        if index.get("Service", namespace, name) is not None:
            continue
        reported.add((namespace, name))
        findings.append(
            check.finding(
                obj,
                message=f"{obj.kind} {where} references non-existent service: {name}",
                verification_command=f"kubectl get svc {name} -n {namespace}",
                target=ResourceRef("Service", namespace, name),
                remediation=f"Create Service {name} or point the {obj.kind} at an existing Service",
            )
        )
    return findings


class IngressBackendCheck(Check):
    """Flags Ingress default and path backends naming a missing Service."""

    check_id = "S02_ingress_backend"
    display_name = "Ingress backend service missing"
    severity = Severity.WARNING
    subject_kind = "Ingress"
    required_kinds = ("Ingress", "Service")

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        def refs() -> Iterator[tuple[str, str, str]]:
            default = nested_map(obj.spec, "defaultBackend") or nested_map(obj.spec, "backend")
            if default is not None:
                yield "default backend", obj.namespace, ingress_service_name(default)
            for rule in nested_list(obj.spec, "rules") or []:
                for path in nested_list(rule, "http", "paths") or []:
                    yield "path backend", obj.namespace, ingress_service_name(nested_map(path, "backend"))

        return _missing_service_findings(self, obj, index, refs())


class HTTPRouteBackendCheck(Check):
    """Flags Gateway API HTTPRoute backendRefs naming a missing Service."""

    check_id = "S03_httproute_backend"
    display_name = "HTTPRoute backend service missing"
    severity = Severity.WARNING
    subject_kind = "HTTPRoute"
    required_kinds = ("HTTPRoute", "Service")

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        def refs() -> Iterator[tuple[str, str, str]]:
            for rule in nested_list(obj.spec, "rules") or []:
                for ref in nested_list(rule, "backendRefs") or []:
                    kind = nested_string(ref, "kind") or "Service"
                    group = nested_string(ref, "group") or ""
                    if kind != "Service" or group:
                        continue
                    namespace = nested_string(ref, "namespace") or obj.namespace
                    yield "backendRef", namespace, nested_string(ref, "name") or ""

        return _missing_service_findings(self, obj, index, refs())


class RouteBackendCheck(Check):
    """Flags OpenShift Route targets naming a missing Service."""

    check_id = "S04_route_backend"
    display_name = "Route target service missing"
    severity = Severity.WARNING
    subject_kind = "Route"
    required_kinds = ("Route", "Service")

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        def refs() -> Iterator[tuple[str, str, str]]:
            targets = [("target", nested_map(obj.spec, "to"))]
            targets.extend(("alternate backend", alt) for alt in nested_list(obj.spec, "alternateBackends") or [])
            for where, target in targets:
                if (nested_string(target, "kind") or "Service") != "Service":
                    continue
                yield where, obj.namespace, nested_string(target, "name") or ""

        return _missing_service_findings(self, obj, index, refs())
