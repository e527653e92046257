"""Upstream extraction for deploying controllers and source objects.

Each extractor reads the convention-specific field paths of one kind and
says where that object's content comes from: either another indexed object
to follow, or a terminal external locator.  Extractors never raise; a
missing or mistyped field means "no recognisable upstream".
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from cubscout.models.chain import ChainLink, ConfigHubUnit, HistoryEntry, RegistryTarget, SourceMetadata
from cubscout.models.objects import (
    ClusterObject,
    ResourceRef,
    nested_list,
    nested_map,
    nested_string,
    nested_value,
)

# Flux source kinds are where a chain ends: they point at content outside the cluster.
SOURCE_KINDS = frozenset({"GitRepository", "OCIRepository", "HelmRepository", "Bucket", "ExternalArtifact"})

_RE_SHA1 = re.compile(r"sha1:([a-f0-9]+)")


# ---------------------------------------------------------------------------
# Locator helpers
# ---------------------------------------------------------------------------


def short_revision(revision: str) -> str:
    """``main@sha1:0a1b2c3d4e`` -> ``0a1b2c3``; ``v1.2.0@sha256:..`` keeps the digest tail."""
    if not revision:
        return ""
    match = _RE_SHA1.search(revision)
    if match:
        return match.group(1)[:7]
    if "@" in revision:
        return revision.rsplit("@", 1)[1]
    return revision


def repo_display_name(url: str) -> str:
    """``https://github.com/org/repo.git`` -> ``org/repo``."""
    if url.startswith("git@") and url.count(":") == 1:
        return url.split(":", 1)[1].removesuffix(".git")
    trimmed = url.removesuffix(".git").rstrip("/")
    parts = trimmed.split("/")
    if len(parts) >= 2:
        return f"{parts[-2]}/{parts[-1]}"
    return trimmed


def parse_registry_url(url: str) -> SourceMetadata:
    """Decode an ``oci://`` URL into registry, repository and, for the
    product's own registry, the instance/space/target coordinates."""
    if not url.startswith("oci://"):
        return SourceMetadata(url=url)
    registry, _, repository = url.removeprefix("oci://").partition("/")
    target: RegistryTarget | None = None
    if registry.startswith("oci.") and repository.startswith("target/"):
        space, _, target_name = repository.removeprefix("target/").partition("/")
        if space and target_name:
            target = RegistryTarget(instance=registry.removeprefix("oci."), space=space, target=target_name)
    return SourceMetadata(url=url, registry=registry, repository=repository, registry_target=target)


def is_product_registry(url: str) -> bool:
    return parse_registry_url(url).registry_target is not None


def _with(base: SourceMetadata, **changes: Any) -> SourceMetadata:
    values = {k: v for k, v in changes.items() if v}
    if not values:
        return base
    return replace(base, **values)


def locator_link(url: str, *, path: str = "", ref: str = "", revision: str = "", chart: str = "",
                 chart_version: str = "") -> ChainLink:
    """Terminal link for content that lives outside the cluster."""
    source = _with(parse_registry_url(url), path=path, ref=ref, revision=revision, chart=chart,
                   chart_version=chart_version)
    if source.registry_target is not None:
        kind, name = "ConfigHubOCI", source.registry_target.display
    elif url.startswith("oci://"):
        kind, name = "OCIRepository", source.repository or source.registry
    elif chart:
        kind, name = "HelmRepository", chart
    else:
        kind, name = "GitRepository", repo_display_name(url)
    return ChainLink(kind=kind, name=name or url, source=source, external=True)


# ---------------------------------------------------------------------------
# Link source metadata for indexed objects
# ---------------------------------------------------------------------------


def _ref_name(spec: dict[str, Any]) -> str:
    for key in ("tag", "semver", "branch", "name", "commit"):
        value = nested_string(spec, "ref", key)
        if value:
            return value
    return ""


def link_source(obj: ClusterObject) -> SourceMetadata:
    """Locator metadata an indexed object contributes to its own link."""
    if obj.kind in ("GitRepository", "OCIRepository", "HelmRepository"):
        return _with(
            parse_registry_url(nested_string(obj.spec, "url") or ""),
            ref=_ref_name(obj.spec),
            revision=nested_string(obj.status, "artifact", "revision") or "",
        )
    if obj.kind == "Bucket":
        endpoint = nested_string(obj.spec, "endpoint") or ""
        bucket = nested_string(obj.spec, "bucketName") or ""
        return SourceMetadata(
            url=f"{endpoint}/{bucket}" if endpoint and bucket else endpoint or bucket,
            revision=nested_string(obj.status, "artifact", "revision") or "",
        )
    if obj.kind == "Kustomization":
        return SourceMetadata(
            path=nested_string(obj.spec, "path") or "",
            revision=nested_string(obj.status, "lastAppliedRevision") or "",
        )
    if obj.kind == "HelmRelease":
        return SourceMetadata(
            chart=nested_string(obj.spec, "chart", "spec", "chart") or "",
            chart_version=nested_string(obj.spec, "chart", "spec", "version") or "",
            revision=nested_string(obj.status, "lastAttemptedRevision") or "",
        )
    if obj.kind == "HelmChart":
        return SourceMetadata(
            chart=nested_string(obj.spec, "chart") or "",
            chart_version=nested_string(obj.spec, "version") or "",
            revision=nested_string(obj.status, "artifact", "revision") or "",
        )
    if obj.kind == "Application":
        source = application_source(obj)
        return SourceMetadata(
            path=nested_string(source, "path") or "",
            ref=nested_string(source, "targetRevision") or "",
            revision=application_revision(obj),
        )
    return SourceMetadata()


# ---------------------------------------------------------------------------
# Upstream extractors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Upstream:
    """Exactly one of ``ref`` (follow an indexed object) or ``locator`` (stop)."""

    ref: ResourceRef | None = None
    locator: ChainLink | None = None


def _source_ref(obj: ClusterObject, *path: str) -> Upstream | None:
    ref = nested_map(obj.spec, *path)
    kind = nested_string(ref, "kind")
    name = nested_string(ref, "name")
    if not kind or not name:
        return None
    namespace = nested_string(ref, "namespace") or obj.namespace
    return Upstream(ref=ResourceRef(kind, namespace, name))


def _kustomization_upstream(obj: ClusterObject) -> Upstream | None:
    return _source_ref(obj, "sourceRef")


def _helmrelease_upstream(obj: ClusterObject) -> Upstream | None:
    return _source_ref(obj, "chartRef") or _source_ref(obj, "chart", "spec", "sourceRef")


def _helmchart_upstream(obj: ClusterObject) -> Upstream | None:
    return _source_ref(obj, "sourceRef")


def application_source(obj: ClusterObject) -> dict[str, Any] | None:
    """``spec.source``, or the first entry of ``spec.sources`` for multi-source apps."""
    source = nested_map(obj.spec, "source")
    if source is not None:
        return source
    sources = nested_list(obj.spec, "sources") or []
    return sources[0] if sources and isinstance(sources[0], dict) else None


def application_revision(obj: ClusterObject) -> str:
    revision = nested_value(obj.status, "sync", "revision")
    if isinstance(revision, str):
        return revision
    revisions = nested_list(obj.status, "sync", "revisions") or []
    return revisions[0] if revisions and isinstance(revisions[0], str) else ""


def application_history(obj: ClusterObject) -> list[HistoryEntry]:
    """Argo ``status.history`` (oldest first on the object), returned newest first."""
    entries: list[HistoryEntry] = []
    for item in nested_list(obj.status, "history") or []:
        if not isinstance(item, dict):
            continue
        revision = nested_string(item, "revision")
        if revision is None:
            # multi-source applications record one revision per source
            revisions = nested_list(item, "revisions") or []
            revision = ", ".join(r for r in revisions if isinstance(r, str))
        if not revision:
            continue
        source = nested_map(item, "source")
        url = nested_string(source, "repoURL") or ""
        path = nested_string(source, "path") or nested_string(source, "chart") or ""
        deploy_id = nested_value(item, "id")
        entries.append(
            HistoryEntry(
                revision=revision,
                status="Synced",
                timestamp=nested_string(item, "deployedAt") or "",
                message=f"deployment {deploy_id}" if isinstance(deploy_id, int) else "",
                source="/".join(p for p in (repo_display_name(url) if url else "", path) if p),
            )
        )
    entries.reverse()
    return entries


def _application_upstream(obj: ClusterObject) -> Upstream | None:
    source = application_source(obj)
    url = nested_string(source, "repoURL")
    if not url:
        return None
    chart = nested_string(source, "chart") or ""
    target_revision = nested_string(source, "targetRevision") or ""
    return Upstream(
        locator=locator_link(
            url,
            path=nested_string(source, "path") or "",
            ref="" if chart else target_revision,
            revision=application_revision(obj),
            chart=chart,
            chart_version=target_revision if chart else "",
        )
    )


UPSTREAM_EXTRACTORS: dict[str, Callable[[ClusterObject], Upstream | None]] = {
    "Kustomization": _kustomization_upstream,
    "HelmRelease": _helmrelease_upstream,
    "HelmChart": _helmchart_upstream,
    "Application": _application_upstream,
}


def upstream_of(obj: ClusterObject) -> Upstream | None:
    extractor = UPSTREAM_EXTRACTORS.get(obj.kind)
    return extractor(obj) if extractor is not None else None


# ---------------------------------------------------------------------------
# ConfigHub unit metadata
# ---------------------------------------------------------------------------

_UNIT_PREFIX = "confighub.com/"


def confighub_unit(obj: ClusterObject) -> ConfigHubUnit | None:
    """Unit metadata stamped on an object by the configuration hub, if any."""

    def read(key: str) -> str:
        return obj.annotation(_UNIT_PREFIX + key) or obj.label(_UNIT_PREFIX + key)

    slug = read("UnitSlug")
    if not slug:
        return None
    return ConfigHubUnit(
        unit_slug=slug,
        space_id=read("SpaceID"),
        space_name=read("SpaceName"),
        target_id=read("TargetID"),
        revision=read("RevisionNum"),
        live_revision=read("LiveRevisionNum"),
        drift_detected=read("DriftDetected").lower() == "true",
    )
