"""Multi-hop provenance resolution.

Walks from a target object to the outermost source that delivered it:

    target -> native owners (Pod -> ReplicaSet -> Deployment)
           -> deploying controller (Kustomization, HelmRelease, Application,
              Helm release record, Terraform workspace, ConfigHub unit)
           -> upstream sources (HelmChart, GitRepository, OCI registry, ...)

The walk is a pure read over one immutable index.  It is bounded by a hop
limit and a visited set, and reports every way it can stop (missing
reference, cycle, hop limit) on the returned Chain instead of raising.
The chain also carries the controlling layer's deployment history and any
drift of the target from its last-applied record.
"""

from __future__ import annotations

from collections.abc import Iterable

from cubscout.chain.drift import detect_drift
from cubscout.chain.helm_release import RELEASE_PREFIX, find_release, release_history
from cubscout.chain.sources import SOURCE_KINDS, application_history, confighub_unit, link_source, upstream_of
from cubscout.models.chain import Chain, ChainEnd, ChainLink, HistoryEntry, SourceMetadata
from cubscout.models.objects import ClusterObject, ResourceKey, ResourceRef
from cubscout.models.ownership import OwnershipResult, OwnerType
from cubscout.models.status import BROKEN_STATES
from cubscout.observability.logging import get_logger
from cubscout.observability.metrics import chain_resolutions_total
from cubscout.ownership.classifier import classify
from cubscout.snapshot.index import SnapshotIndex
from cubscout.status.inferrer import condition_reason, infer, status_message

_logger = get_logger("chain.resolver")

DEFAULT_MAX_HOPS = 10

# Namespaces searched first when an owner marker names a controller without
# saying where it lives.
_CONTROLLER_NAMESPACES = {
    "Kustomization": ("flux-system",),
    "HelmRelease": ("flux-system",),
    "Application": ("argocd", "openshift-gitops"),
}


def object_link(obj: ClusterObject) -> ChainLink:
    """Link for an indexed object, carrying its own inferred status."""
    return ChainLink(
        kind=obj.kind,
        name=obj.name,
        namespace=obj.namespace,
        status=infer(obj),
        message=status_message(obj),
        reason=condition_reason(obj),
        source=link_source(obj),
    )


class _Stop(Exception):
    """Internal signal carrying the terminus of a walk."""

    def __init__(self, terminus: ChainEnd, detail: str = "") -> None:
        super().__init__(detail)
        self.terminus = terminus
        self.detail = detail


class _Walk:
    """Accumulates links leaf-first and enforces the hop and cycle bounds."""

    def __init__(self, max_hops: int) -> None:
        self.max_hops = max_hops
        self.links: list[ChainLink] = []
        self.visited: set[ResourceKey] = set()

    def add(self, link: ChainLink, key: ResourceKey | None = None) -> None:
        if key is not None:
            if key in self.visited:
                raise _Stop(ChainEnd.CYCLE, f"{key} is referenced twice on the same chain")
            self.visited.add(key)
        if len(self.links) >= self.max_hops:
            raise _Stop(ChainEnd.HOP_LIMIT, f"stopped after {self.max_hops} hops")
        self.links.append(link)

    def add_object(self, obj: ClusterObject) -> None:
        self.add(object_link(obj), obj.key)


def _locate(index: SnapshotIndex, kind: str, name: str, namespace: str) -> ClusterObject | None:
    """Find a controller by name, searching well-known namespaces when none is given."""
    if namespace:
        return index.get(kind, namespace, name)
    candidates = index.find_by_name(kind, name)
    if len(candidates) == 1:
        return candidates[0]
    for preferred in _CONTROLLER_NAMESPACES.get(kind, ()):
        for obj in candidates:
            if obj.namespace == preferred:
                return obj
    return None


def _missing(ref: ResourceRef, index: SnapshotIndex) -> _Stop:
    if not index.observed(ref.kind):
        return _Stop(ChainEnd.MISSING_REFERENCE, f"{ref} not found ({ref.kind} was not collected)")
    return _Stop(ChainEnd.MISSING_REFERENCE, f"{ref} not found")


# ---------------------------------------------------------------------------
# Walk phases
# ---------------------------------------------------------------------------


def _walk_native_owners(
    walk: _Walk, start: ClusterObject, index: SnapshotIndex
) -> tuple[ClusterObject, OwnershipResult]:
    """Climb controlling owner references; return the top object and its ownership.

    When an owner is absent the walk stops there, unless the object itself
    carries a management marker that still identifies its controller.
    """
    current = start
    while True:
        owner_ref = current.controller_reference()
        if owner_ref is None:
            return current, classify(current)
        owner = index.get(owner_ref.kind, current.namespace, owner_ref.name)
        if owner is None:
            ownership = classify(current)
            if ownership.is_managed:
                return current, ownership
            raise _missing(ResourceRef(owner_ref.kind, current.namespace, owner_ref.name), index)
        walk.add_object(owner)
        current = owner


def _follow_upstream(walk: _Walk, controller: ClusterObject, index: SnapshotIndex) -> None:
    current = controller
    while True:
        if current.kind in SOURCE_KINDS:
            raise _Stop(ChainEnd.SOURCE)
        upstream = upstream_of(current)
        if upstream is None:
            raise _Stop(ChainEnd.NO_UPSTREAM, f"{current.ref} names no upstream source")
        if upstream.locator is not None:
            walk.add(upstream.locator)
            raise _Stop(ChainEnd.SOURCE)
        assert upstream.ref is not None
        obj = index.get_key(upstream.ref.key)
        if obj is None:
            raise _missing(upstream.ref, index)
        walk.add_object(obj)
        current = obj


def _helm_release_links(walk: _Walk, ownership: OwnershipResult, index: SnapshotIndex) -> None:
    release = find_release(index, ownership.name, ownership.namespace)
    if release is None:
        ref = ResourceRef("Secret", ownership.namespace, f"{RELEASE_PREFIX}{ownership.name}.v*")
        raise _missing(ref, index)
    walk.add(
        ChainLink(
            kind="Release",
            name=release.name,
            namespace=release.namespace or ownership.namespace,
            status=release.state,
            message=release.description,
            reason=release.status,
            source=SourceMetadata(revision=f"v{release.revision}", chart=release.chart_name,
                                  chart_version=release.chart_version),
        ),
        ResourceKey("Release", release.namespace or ownership.namespace, release.name),
    )
    walk.add(
        ChainLink(
            kind="HelmChart",
            name=release.chart_name or release.name,
            message=f"app version {release.app_version}" if release.app_version else "",
            source=SourceMetadata(
                url=release.chart_url,
                chart=release.chart_name,
                chart_version=release.chart_version,
                revision=release.chart_version,
            ),
            external=True,
        )
    )
    raise _Stop(ChainEnd.SOURCE)


def _resolve_controller(walk: _Walk, top: ClusterObject, ownership: OwnershipResult, index: SnapshotIndex) -> None:
    if ownership.type == OwnerType.FLUX:
        kind = "HelmRelease" if ownership.sub_type == "helmrelease" else "Kustomization"
        controller = _locate(index, kind, ownership.name, ownership.namespace)
        if controller is None:
            raise _missing(ResourceRef(kind, ownership.namespace, ownership.name), index)
        walk.add_object(controller)
        _follow_upstream(walk, controller, index)

    elif ownership.type == OwnerType.ARGO:
        controller = _locate(index, "Application", ownership.name, ownership.namespace)
        if controller is None:
            raise _missing(ResourceRef("Application", ownership.namespace, ownership.name), index)
        walk.add_object(controller)
        _follow_upstream(walk, controller, index)

    elif ownership.type == OwnerType.HELM:
        _helm_release_links(walk, ownership, index)

    elif ownership.type == OwnerType.TERRAFORM:
        walk.add(
            ChainLink(
                kind="TerraformWorkspace",
                name=ownership.name or ownership.sub_type,
                source=SourceMetadata(revision=top.annotation("app.terraform.io/run-id")),
                external=True,
            )
        )
        raise _Stop(ChainEnd.SOURCE)

    elif ownership.type == OwnerType.CONFIGHUB:
        unit = confighub_unit(top)
        walk.add(
            ChainLink(
                kind="ConfigHubUnit",
                name=ownership.name,
                namespace=ownership.namespace,
                message="drift detected" if unit is not None and unit.drift_detected else "",
                source=SourceMetadata(
                    path=f"{ownership.namespace}/{ownership.name}" if ownership.namespace else ownership.name,
                    revision=unit.revision if unit is not None else "",
                ),
                external=True,
            )
        )
        raise _Stop(ChainEnd.SOURCE)

    else:
        raise _Stop(ChainEnd.NO_MANAGING_SOURCE)


def _history(ownership: OwnershipResult, index: SnapshotIndex) -> tuple[HistoryEntry, ...]:
    """Deployment history of the controlling layer, newest first."""
    if not ownership.name:
        return ()
    if ownership.type == OwnerType.HELM:
        return tuple(r.history_entry() for r in release_history(index, ownership.name, ownership.namespace))
    if ownership.type == OwnerType.ARGO:
        app = _locate(index, "Application", ownership.name, ownership.namespace)
        return tuple(application_history(app)) if app is not None else ()
    return ()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def resolve(target: ClusterObject, index: SnapshotIndex, max_hops: int = DEFAULT_MAX_HOPS) -> Chain:
    """Resolve the provenance chain of ``target``.

    ``Chain.ownership`` is the classification of the topmost object reached
    through native owner references, which for a Pod is its Deployment's
    ownership rather than the Pod's own.
    """
    walk = _Walk(max(1, max_hops))
    ownership = classify(target)
    terminus = ChainEnd.NO_MANAGING_SOURCE
    detail = ""
    try:
        walk.add_object(target)
        top, ownership = _walk_native_owners(walk, target, index)
        _resolve_controller(walk, top, ownership, index)
    except _Stop as stop:
        terminus = stop.terminus
        detail = stop.detail

    links = tuple(reversed(walk.links))
    broken_at = next((i for i, link in enumerate(links) if link.status in BROKEN_STATES), None)
    chain_resolutions_total.labels(terminus=terminus.value).inc()
    if terminus in (ChainEnd.CYCLE, ChainEnd.HOP_LIMIT):
        _logger.warning("chain_walk_bounded", target=str(target.key), terminus=terminus.value, detail=detail)
    else:
        _logger.debug("chain_resolved", target=str(target.key), terminus=terminus.value, links=len(links))
    return Chain(
        target=target.ref,
        ownership=ownership,
        links=links,
        terminus=terminus,
        broken_at=broken_at,
        detail=detail,
        confighub=confighub_unit(target),
        history=_history(ownership, index),
        drift=detect_drift(target),
    )


def resolve_many(
    targets: Iterable[ClusterObject],
    index: SnapshotIndex,
    max_hops: int = DEFAULT_MAX_HOPS,
) -> list[Chain]:
    """Resolve independent targets against the same index."""
    return [resolve(target, index, max_hops=max_hops) for target in targets]


def resolve_ref(
    index: SnapshotIndex,
    kind: str,
    namespace: str,
    name: str,
    max_hops: int = DEFAULT_MAX_HOPS,
) -> Chain | None:
    """Resolve by identity; ``None`` when the target is not in the index."""
    target = index.get(kind, namespace, name)
    if target is None:
        return None
    return resolve(target, index, max_hops=max_hops)


__all__ = [
    "DEFAULT_MAX_HOPS",
    "object_link",
    "resolve",
    "resolve_many",
    "resolve_ref",
]
