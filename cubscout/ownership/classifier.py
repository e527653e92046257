"""Ownership classification.

Each detector inspects labels, annotations and owner references and either
claims the object or passes.  Detectors run in a fixed priority order and
the first claim wins, however many other conventions' markers are present:
GitOps controllers stamp their own markers on objects rendered from Helm
charts, so the controller must outrank the chart.
"""

from __future__ import annotations

from collections.abc import Callable

from cubscout.models.objects import ClusterObject
from cubscout.models.ownership import UNKNOWN_OWNERSHIP, OwnershipResult, OwnerType
from cubscout.observability.logging import get_logger

_logger = get_logger("ownership.classifier")

# Flux
FLUX_KUSTOMIZE_NAME = "kustomize.toolkit.fluxcd.io/name"
FLUX_KUSTOMIZE_NAMESPACE = "kustomize.toolkit.fluxcd.io/namespace"
FLUX_HELM_NAME = "helm.toolkit.fluxcd.io/name"
FLUX_HELM_NAMESPACE = "helm.toolkit.fluxcd.io/namespace"

# Argo CD
INSTANCE_LABEL = "app.kubernetes.io/instance"
ARGO_INSTANCE_LABEL = "argocd.argoproj.io/instance"
ARGO_TRACKING_ANNOTATION = "argocd.argoproj.io/tracking-id"

# Helm
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
HELM_CHART_LABEL = "helm.sh/chart"
HELM_RELEASE_NAME_ANNOTATION = "meta.helm.sh/release-name"
HELM_RELEASE_NAMESPACE_ANNOTATION = "meta.helm.sh/release-namespace"

# Terraform
TERRAFORM_RUN_ID = "app.terraform.io/run-id"
TERRAFORM_WORKSPACE = "app.terraform.io/workspace-name"
TERRAFORM_MANAGED = "app.terraform.io/managed"

# ConfigHub
CONFIGHUB_UNIT_SLUG = "confighub.com/UnitSlug"
CONFIGHUB_SPACE_NAME = "confighub.com/SpaceName"

Detector = Callable[[ClusterObject], OwnershipResult | None]


def detect_flux(obj: ClusterObject) -> OwnershipResult | None:
    if FLUX_KUSTOMIZE_NAME in obj.labels:
        return OwnershipResult(
            type=OwnerType.FLUX,
            sub_type="kustomization",
            name=obj.labels[FLUX_KUSTOMIZE_NAME],
            namespace=obj.label(FLUX_KUSTOMIZE_NAMESPACE),
        )
    if FLUX_HELM_NAME in obj.labels:
        return OwnershipResult(
            type=OwnerType.FLUX,
            sub_type="helmrelease",
            name=obj.labels[FLUX_HELM_NAME],
            namespace=obj.label(FLUX_HELM_NAMESPACE),
        )
    return None


def parse_tracking_id(value: str) -> tuple[str, str] | None:
    """Split ``app-name:group/kind:namespace/name`` into (app name, app namespace).

    Applications outside the control-plane namespace are tracked as
    ``namespace_app``; the namespace part is returned when present.
    Returns ``None`` when no application name can be read.
    """
    app = value.split(":", 1)[0].strip()
    if not app:
        return None
    if "_" in app:
        namespace, _, name = app.partition("_")
        if namespace and name:
            return name, namespace
    return app, ""


def detect_argo(obj: ClusterObject) -> OwnershipResult | None:
    if INSTANCE_LABEL in obj.labels and ARGO_INSTANCE_LABEL in obj.labels:
        return OwnershipResult(type=OwnerType.ARGO, sub_type="application", name=obj.labels[INSTANCE_LABEL])
    tracking = obj.annotations.get(ARGO_TRACKING_ANNOTATION)
    if tracking is None:
        return None
    parsed = parse_tracking_id(tracking)
    if parsed is None:
        _logger.debug("argo_tracking_id_unparsable", object=str(obj.key), tracking_id=tracking)
        return None
    name, namespace = parsed
    return OwnershipResult(type=OwnerType.ARGO, sub_type="application", name=name, namespace=namespace)


def detect_helm(obj: ClusterObject) -> OwnershipResult | None:
    managed_by_helm = obj.label(MANAGED_BY_LABEL) == "Helm"
    chart = obj.labels.get(HELM_CHART_LABEL)
    release = obj.annotations.get(HELM_RELEASE_NAME_ANNOTATION)
    if not managed_by_helm and chart is None and release is None:
        return None
    name = obj.label(INSTANCE_LABEL) or release or chart or ""
    namespace = obj.annotation(HELM_RELEASE_NAMESPACE_ANNOTATION) or obj.namespace
    return OwnershipResult(type=OwnerType.HELM, sub_type="release", name=name, namespace=namespace)


def detect_terraform(obj: ClusterObject) -> OwnershipResult | None:
    if TERRAFORM_RUN_ID in obj.annotations:
        return OwnershipResult(
            type=OwnerType.TERRAFORM,
            sub_type="workspace",
            name=obj.annotation(TERRAFORM_WORKSPACE),
        )
    if obj.label(TERRAFORM_MANAGED).lower() == "true":
        return OwnershipResult(type=OwnerType.TERRAFORM, sub_type="managed")
    return None


def detect_confighub(obj: ClusterObject) -> OwnershipResult | None:
    unit = obj.labels.get(CONFIGHUB_UNIT_SLUG) or obj.annotations.get(CONFIGHUB_UNIT_SLUG)
    if not unit:
        return None
    space = obj.annotation(CONFIGHUB_SPACE_NAME) or obj.label(CONFIGHUB_SPACE_NAME)
    return OwnershipResult(type=OwnerType.CONFIGHUB, sub_type="unit", name=unit, namespace=space)


def detect_native(obj: ClusterObject) -> OwnershipResult | None:
    owner = obj.controller_reference()
    if owner is None:
        return None
    return OwnershipResult(
        type=OwnerType.K8S,
        sub_type=owner.kind.lower(),
        name=owner.name,
        namespace=obj.namespace,
    )


# Priority order; the first detector that returns a result wins.
DETECTORS: tuple[tuple[OwnerType, Detector], ...] = (
    (OwnerType.FLUX, detect_flux),
    (OwnerType.ARGO, detect_argo),
    (OwnerType.HELM, detect_helm),
    (OwnerType.TERRAFORM, detect_terraform),
    (OwnerType.CONFIGHUB, detect_confighub),
    (OwnerType.K8S, detect_native),
)


def classify(obj: ClusterObject) -> OwnershipResult:
    """Return exactly one ownership result for ``obj``.  Total and pure."""
    for _owner, detector in DETECTORS:
        result = detector(obj)
        if result is not None:
            return result
    return UNKNOWN_OWNERSHIP


_DISPLAY_NAMES = {
    OwnerType.FLUX: "Flux",
    OwnerType.ARGO: "ArgoCD",
    OwnerType.HELM: "Helm",
    OwnerType.TERRAFORM: "Terraform",
    OwnerType.CONFIGHUB: "ConfigHub",
    OwnerType.K8S: "Native",
    OwnerType.UNKNOWN: "Unmanaged",
}


def display_owner(owner: OwnerType) -> str:
    return _DISPLAY_NAMES[owner]
