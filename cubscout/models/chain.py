"""Provenance chain data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from cubscout.models.objects import ResourceRef
from cubscout.models.ownership import OwnershipResult
from cubscout.models.status import StatusState


class ChainEnd(StrEnum):
    """Why chain resolution stopped."""

    SOURCE = "source"  # reached a terminal source locator
    NO_MANAGING_SOURCE = "no_managing_source"  # native-only or unclassified object
    MISSING_REFERENCE = "missing_reference"  # referenced object absent from the snapshot
    NO_UPSTREAM = "no_upstream"  # indexed object carries no recognisable upstream reference
    CYCLE = "cycle"
    HOP_LIMIT = "hop_limit"


@dataclass(frozen=True)
class RegistryTarget:
    """Coordinates decoded from a product registry URL.

    ``oci://oci.<instance>/target/<space>/<target>``
    """

    instance: str
    space: str
    target: str

    @property
    def display(self) -> str:
        return f"{self.space}/{self.target}"


@dataclass(frozen=True)
class SourceMetadata:
    """Where a link's content comes from.  Every field is optional."""

    url: str = ""
    path: str = ""
    revision: str = ""
    ref: str = ""
    registry: str = ""
    repository: str = ""
    chart: str = ""
    chart_version: str = ""
    registry_target: RegistryTarget | None = None

    @property
    def empty(self) -> bool:
        return self == _EMPTY_SOURCE


_EMPTY_SOURCE = SourceMetadata()


@dataclass(frozen=True)
class ChainLink:
    """One hop of a provenance chain.

    ``external`` links are terminal locators (a Git URL, a chart, a Terraform
    workspace) rather than objects present in the snapshot.
    """

    kind: str
    name: str
    namespace: str = ""
    status: StatusState = StatusState.UNKNOWN
    message: str = ""
    reason: str = ""
    source: SourceMetadata = field(default_factory=SourceMetadata)
    external: bool = False

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(self.kind, self.namespace, self.name)


@dataclass(frozen=True)
class ConfigHubUnit:
    """Unit metadata attached to objects delivered by the configuration hub."""

    unit_slug: str
    space_id: str = ""
    space_name: str = ""
    target_id: str = ""
    revision: str = ""
    live_revision: str = ""
    drift_detected: bool = False

    @property
    def remediation_url(self) -> str:
        if not self.space_id or not self.unit_slug:
            return ""
        return f"https://confighub.com/spaces/{self.space_id}/units/{self.unit_slug}"


@dataclass(frozen=True)
class HistoryEntry:
    """One recorded deployment of the layer that controls a chain.

    ``timestamp`` is kept as the controller wrote it (RFC 3339).
    """

    revision: str
    status: str = ""
    timestamp: str = ""
    message: str = ""
    source: str = ""


@dataclass(frozen=True)
class FieldDrift:
    """A declared field whose live value differs.

    ``declared`` or ``live`` is ``None`` when the field is absent on that side.
    """

    path: str
    declared: Any
    live: Any


@dataclass(frozen=True)
class Chain:
    """Ordered provenance of one object, outermost source first, leaf last."""

    target: ResourceRef
    ownership: OwnershipResult
    links: tuple[ChainLink, ...]
    terminus: ChainEnd
    broken_at: int | None = None
    detail: str = ""
    confighub: ConfigHubUnit | None = None
    history: tuple[HistoryEntry, ...] = ()  # newest first
    drift: tuple[FieldDrift, ...] = ()

    @property
    def complete(self) -> bool:
        """True when the chain reached a terminal source locator."""
        return self.terminus == ChainEnd.SOURCE

    @property
    def managed(self) -> bool:
        return self.terminus != ChainEnd.NO_MANAGING_SOURCE

    @property
    def broken(self) -> bool:
        return self.broken_at is not None

    @property
    def drifted(self) -> bool:
        return bool(self.drift)

    @property
    def broken_link(self) -> ChainLink | None:
        if self.broken_at is None:
            return None
        return self.links[self.broken_at]

    @property
    def source(self) -> ChainLink | None:
        """The outermost link when it is a terminal locator."""
        if self.links and self.links[0].external:
            return self.links[0]
        return None
