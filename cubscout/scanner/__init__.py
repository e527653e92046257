"""Structural-integrity scanner.

Exposes:
    scan           -- run the default check catalog over a snapshot index.
    default_checks -- fresh instances of every built-in check, in run order.
    Scanner, Check -- building blocks for custom catalogs.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from cubscout.models.findings import Finding, Severity
from cubscout.scanner.base import Check, Scanner
from cubscout.scanner.s01_service_selector import ServiceSelectorCheck
from cubscout.scanner.s02_route_backends import HTTPRouteBackendCheck, IngressBackendCheck, RouteBackendCheck
from cubscout.scanner.s05_autoscalers import HPABoundsCheck, HPATargetCheck, VPATargetCheck
from cubscout.scanner.s08_disruption_budget import DisruptionBudgetBlocksEvictionCheck, DisruptionBudgetSelectorCheck
from cubscout.scanner.s10_network_policy import NetworkPolicySelectorCheck
from cubscout.scanner.s11_pod_references import PodClaimCheck, PodConfigMapCheck, PodSecretCheck
from cubscout.scanner.s14_unused_claims import UnmountedClaimCheck
from cubscout.snapshot.index import SnapshotIndex


def default_checks() -> list[Check]:
    return [
        ServiceSelectorCheck(),
        IngressBackendCheck(),
        HTTPRouteBackendCheck(),
        RouteBackendCheck(),
        HPATargetCheck(),
        HPABoundsCheck(),
        VPATargetCheck(),
        DisruptionBudgetBlocksEvictionCheck(),
        DisruptionBudgetSelectorCheck(),
        NetworkPolicySelectorCheck(),
        PodClaimCheck(),
        PodSecretCheck(),
        PodConfigMapCheck(),
        UnmountedClaimCheck(),
    ]


def scan(
    index: SnapshotIndex,
    checks: Sequence[Check] | None = None,
    disabled: Iterable[str] = (),
    min_severity: Severity = Severity.INFO,
) -> list[Finding]:
    """Run ``checks`` (default: the full catalog) and return sorted findings."""
    scanner = Scanner(checks if checks is not None else default_checks(), disabled=disabled)
    return scanner.scan(index, min_severity=min_severity)


__all__ = [
    "Check",
    "Scanner",
    "default_checks",
    "scan",
]
