"""Cluster-wide ownership map: one row per object plus aggregate counts."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from cubscout.models.objects import ClusterObject, ResourceRef
from cubscout.models.ownership import OwnershipResult, OwnerType
from cubscout.models.status import StatusState
from cubscout.observability.metrics import ownership_classifications_total
from cubscout.ownership.classifier import classify
from cubscout.status.inferrer import infer, status_message


@dataclass(frozen=True)
class MapEntry:
    """Ownership and health of one object."""

    ref: ResourceRef
    ownership: OwnershipResult
    status: StatusState
    message: str = ""


@dataclass
class OwnerStats:
    """Aggregate counts for a set of map entries."""

    total: int = 0
    by_owner: Counter[str] = field(default_factory=Counter)
    by_kind: Counter[str] = field(default_factory=Counter)
    by_status: Counter[str] = field(default_factory=Counter)

    @property
    def unmanaged(self) -> int:
        return self.by_owner[OwnerType.UNKNOWN]

    @property
    def unhealthy(self) -> int:
        return sum(
            self.by_status[state] for state in (StatusState.NOT_READY, StatusState.FAILED, StatusState.PENDING)
        )


def build_map(
    objects: Iterable[ClusterObject],
    owner: OwnerType | None = None,
    kinds: Iterable[str] | None = None,
) -> list[MapEntry]:
    """Classify and infer every object, optionally filtered by owner and kind."""
    wanted_kinds = set(kinds) if kinds else None
    entries: list[MapEntry] = []
    for obj in objects:
        if wanted_kinds is not None and obj.kind not in wanted_kinds:
            continue
        ownership = classify(obj)
        ownership_classifications_total.labels(owner=ownership.type.value).inc()
        if owner is not None and ownership.type != owner:
            continue
        entries.append(MapEntry(ref=obj.ref, ownership=ownership, status=infer(obj), message=status_message(obj)))
    return entries


def summarize(entries: Iterable[MapEntry]) -> OwnerStats:
    stats = OwnerStats()
    for entry in entries:
        stats.total += 1
        stats.by_owner[entry.ownership.type] += 1
        stats.by_kind[entry.ref.kind] += 1
        stats.by_status[entry.status] += 1
    return stats
