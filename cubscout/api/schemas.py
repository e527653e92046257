"""Pydantic response models for the cub-scout REST API.

The domain types are frozen dataclasses; these models are the wire shape
and are built from them with the ``from_*`` constructors.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from cubscout.models.chain import Chain, ChainLink, SourceMetadata
from cubscout.models.findings import Finding
from cubscout.models.objects import ResourceRef
from cubscout.ownership import MapEntry, OwnerStats


class ErrorResponse(BaseModel):
    """Error envelope returned by every non-2xx response."""

    error: str
    detail: str


class ResourceRefModel(BaseModel):
    kind: str
    namespace: str = ""
    name: str

    @classmethod
    def from_ref(cls, ref: ResourceRef) -> ResourceRefModel:
        return cls(kind=ref.kind, namespace=ref.namespace, name=ref.name)


class HealthResponse(BaseModel):
    status: str
    version: str
    cluster: str = ""
    objects: int = 0
    generated_at: str = ""
    collected_kinds: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Ownership map
# ---------------------------------------------------------------------------


class OwnershipModel(BaseModel):
    type: str
    sub_type: str = ""
    name: str = ""
    namespace: str = ""


class MapEntryModel(BaseModel):
    resource: ResourceRefModel
    ownership: OwnershipModel
    status: str
    message: str = ""

    @classmethod
    def from_entry(cls, entry: MapEntry) -> MapEntryModel:
        own = entry.ownership
        return cls(
            resource=ResourceRefModel.from_ref(entry.ref),
            ownership=OwnershipModel(
                type=own.type.value, sub_type=own.sub_type, name=own.name, namespace=own.namespace
            ),
            status=entry.status.value,
            message=entry.message,
        )


class MapSummaryModel(BaseModel):
    total: int
    unmanaged: int
    unhealthy: int
    by_owner: dict[str, int]
    by_kind: dict[str, int]
    by_status: dict[str, int]

    @classmethod
    def from_stats(cls, stats: OwnerStats) -> MapSummaryModel:
        return cls(
            total=stats.total,
            unmanaged=stats.unmanaged,
            unhealthy=stats.unhealthy,
            by_owner={str(k): v for k, v in sorted(stats.by_owner.items())},
            by_kind=dict(sorted(stats.by_kind.items())),
            by_status={str(k): v for k, v in sorted(stats.by_status.items())},
        )


class MapResponse(BaseModel):
    summary: MapSummaryModel
    entries: list[MapEntryModel]


# ---------------------------------------------------------------------------
# Provenance chain
# ---------------------------------------------------------------------------


class SourceModel(BaseModel):
    url: str = ""
    path: str = ""
    revision: str = ""
    ref: str = ""
    registry: str = ""
    repository: str = ""
    chart: str = ""
    chart_version: str = ""
    registry_target: str = ""

    @classmethod
    def from_source(cls, source: SourceMetadata) -> SourceModel:
        return cls(
            url=source.url,
            path=source.path,
            revision=source.revision,
            ref=source.ref,
            registry=source.registry,
            repository=source.repository,
            chart=source.chart,
            chart_version=source.chart_version,
            registry_target=source.registry_target.display if source.registry_target else "",
        )


class ChainLinkModel(BaseModel):
    kind: str
    name: str
    namespace: str = ""
    status: str
    message: str = ""
    reason: str = ""
    external: bool = False
    source: SourceModel | None = None

    @classmethod
    def from_link(cls, link: ChainLink) -> ChainLinkModel:
        return cls(
            kind=link.kind,
            name=link.name,
            namespace=link.namespace,
            status=link.status.value,
            message=link.message,
            reason=link.reason,
            external=link.external,
            source=None if link.source.empty else SourceModel.from_source(link.source),
        )


class ConfigHubModel(BaseModel):
    unit_slug: str
    space_id: str = ""
    space_name: str = ""
    target_id: str = ""
    revision: str = ""
    live_revision: str = ""
    drift_detected: bool = False
    remediation_url: str = ""


class HistoryEntryModel(BaseModel):
    revision: str
    status: str = ""
    timestamp: str = ""
    message: str = ""
    source: str = ""


class FieldDriftModel(BaseModel):
    path: str
    declared: Any = None
    live: Any = None


class ChainResponse(BaseModel):
    target: ResourceRefModel
    ownership: OwnershipModel
    terminus: str
    complete: bool
    detail: str = ""
    broken_at: int | None = None
    links: list[ChainLinkModel]
    confighub: ConfigHubModel | None = None
    history: list[HistoryEntryModel] = Field(default_factory=list)
    drifted: bool = False
    drift: list[FieldDriftModel] = Field(default_factory=list)

    @classmethod
    def from_chain(cls, chain: Chain) -> ChainResponse:
        own = chain.ownership
        unit = chain.confighub
        return cls(
            target=ResourceRefModel.from_ref(chain.target),
            ownership=OwnershipModel(
                type=own.type.value, sub_type=own.sub_type, name=own.name, namespace=own.namespace
            ),
            terminus=chain.terminus.value,
            complete=chain.complete,
            detail=chain.detail,
            broken_at=chain.broken_at,
            links=[ChainLinkModel.from_link(link) for link in chain.links],
            confighub=None
            if unit is None
            else ConfigHubModel(
                unit_slug=unit.unit_slug,
                space_id=unit.space_id,
                space_name=unit.space_name,
                target_id=unit.target_id,
                revision=unit.revision,
                live_revision=unit.live_revision,
                drift_detected=unit.drift_detected,
                remediation_url=unit.remediation_url,
            ),
            history=[
                HistoryEntryModel(
                    revision=h.revision, status=h.status, timestamp=h.timestamp, message=h.message, source=h.source
                )
                for h in chain.history
            ],
            drifted=chain.drifted,
            drift=[FieldDriftModel(path=d.path, declared=d.declared, live=d.live) for d in chain.drift],
        )


# ---------------------------------------------------------------------------
# Scan
# ---------------------------------------------------------------------------


class FindingModel(BaseModel):
    rule_id: str
    severity: str
    category: str
    subject: ResourceRefModel
    target: ResourceRefModel | None = None
    message: str
    verification_command: str
    remediation: str = ""
    details: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_finding(cls, finding: Finding) -> FindingModel:
        return cls(
            rule_id=finding.rule_id,
            severity=finding.severity.value,
            category=finding.category,
            subject=ResourceRefModel.from_ref(finding.subject),
            target=ResourceRefModel.from_ref(finding.target) if finding.target else None,
            message=finding.message,
            verification_command=finding.verification_command,
            remediation=finding.remediation,
            details=dict(finding.details),
        )


class ScanResponse(BaseModel):
    total: int
    by_severity: dict[str, int]
    findings: list[FindingModel]
