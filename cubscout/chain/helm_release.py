"""Decoding of Helm release storage objects.

Helm v3 records every revision of a release in a Secret (default driver) or
ConfigMap named ``sh.helm.release.v1.<release>.v<revision>``.  The
``release`` payload is base64(gzip(json)); Secret data adds the
orchestrator's own base64 layer on top.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import json
import re
import zlib
from dataclasses import dataclass, field
from typing import Any

from cubscout.models.chain import HistoryEntry
from cubscout.models.objects import ClusterObject, nested_int, nested_list, nested_map, nested_string
from cubscout.models.status import StatusState
from cubscout.observability.logging import get_logger
from cubscout.snapshot.index import SnapshotIndex

_logger = get_logger("chain.helm_release")

RELEASE_PREFIX = "sh.helm.release.v1."
_RE_STORAGE_NAME = re.compile(r"^sh\.helm\.release\.v1\.(?P<release>.+)\.v(?P<revision>\d+)$")
_GZIP_MAGIC = b"\x1f\x8b"

# Helm release status -> link status
_RELEASE_STATES: dict[str, StatusState] = {
    "deployed": StatusState.READY,
    "superseded": StatusState.READY,
    "failed": StatusState.FAILED,
    "pending-install": StatusState.PENDING,
    "pending-upgrade": StatusState.PENDING,
    "pending-rollback": StatusState.PENDING,
    "uninstalling": StatusState.NOT_READY,
    "uninstalled": StatusState.NOT_READY,
}


@dataclass(frozen=True)
class HelmRelease:
    """The parts of a decoded release record the chain needs."""

    name: str
    namespace: str
    revision: int
    status: str = ""
    description: str = ""
    last_deployed: str = ""
    chart_name: str = ""
    chart_version: str = ""
    app_version: str = ""
    chart_sources: tuple[str, ...] = field(default_factory=tuple)
    chart_home: str = ""

    @property
    def state(self) -> StatusState:
        return _RELEASE_STATES.get(self.status, StatusState.UNKNOWN)

    @property
    def chart_url(self) -> str:
        return self.chart_sources[0] if self.chart_sources else self.chart_home

    def history_entry(self) -> HistoryEntry:
        return HistoryEntry(
            revision=f"v{self.revision}",
            status=self.status,
            timestamp=self.last_deployed,
            message=self.description,
            source=f"chart {self.chart_name}-{self.chart_version}" if self.chart_name else "",
        )

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> HelmRelease | None:
        name = nested_string(doc, "name")
        if not name:
            return None
        sources = nested_list(doc, "chart", "metadata", "sources") or []
        return cls(
            name=name,
            namespace=nested_string(doc, "namespace") or "",
            revision=nested_int(doc, "version") or 0,
            status=nested_string(doc, "info", "status") or "",
            description=nested_string(doc, "info", "description") or "",
            last_deployed=nested_string(doc, "info", "last_deployed") or "",
            chart_name=nested_string(doc, "chart", "metadata", "name") or "",
            chart_version=nested_string(doc, "chart", "metadata", "version") or "",
            app_version=nested_string(doc, "chart", "metadata", "appVersion") or "",
            chart_sources=tuple(s for s in sources if isinstance(s, str) and s),
            chart_home=nested_string(doc, "chart", "metadata", "home") or "",
        )


def parse_storage_name(name: str) -> tuple[str, int] | None:
    """``sh.helm.release.v1.web.v3`` -> ("web", 3)."""
    match = _RE_STORAGE_NAME.match(name)
    if not match:
        return None
    return match.group("release"), int(match.group("revision"))


def _b64(value: bytes) -> bytes | None:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return None


def decode_payload(payload: str, layers: int = 1) -> dict[str, Any] | None:
    """Decode a ``release`` payload with ``layers`` base64 wrappings.

    Tolerates one missing base64 layer and an uncompressed JSON body.
    Returns ``None`` for anything that does not decode to a JSON object.
    """
    data = payload.encode("ascii", errors="ignore")
    for _ in range(layers):
        decoded = _b64(data)
        if decoded is None:
            break
        data = decoded
    if data.startswith(_GZIP_MAGIC):
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError, zlib.error):
            return None
    try:
        doc = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return doc if isinstance(doc, dict) else None


def decode_storage_object(obj: ClusterObject) -> HelmRelease | None:
    """Decode a release Secret or ConfigMap; ``None`` when it is unreadable."""
    payload = nested_string(nested_map(obj.data, "data"), "release")
    if payload is None:
        return None
    layers = 2 if obj.kind == "Secret" else 1
    doc = decode_payload(payload, layers=layers)
    if doc is None:
        _logger.debug("helm_release_undecodable", object=str(obj.key))
        return None
    return HelmRelease.from_document(doc)


def _storage_objects(index: SnapshotIndex, name: str, namespace: str) -> list[ClusterObject]:
    """Storage objects of release ``name``, newest revision first."""
    candidates: list[tuple[int, ClusterObject]] = []
    for kind in ("Secret", "ConfigMap"):
        for obj in index.list(kind, namespace):
            parsed = parse_storage_name(obj.name)
            if parsed is not None and parsed[0] == name:
                candidates.append((parsed[1], obj))
    return [obj for _revision, obj in sorted(candidates, key=lambda item: item[0], reverse=True)]


def find_release(index: SnapshotIndex, name: str, namespace: str) -> HelmRelease | None:
    """Newest decodable revision of release ``name`` in ``namespace``."""
    for obj in _storage_objects(index, name, namespace):
        release = decode_storage_object(obj)
        if release is not None:
            return release
    return None


def release_history(index: SnapshotIndex, name: str, namespace: str) -> list[HelmRelease]:
    """Every decodable revision of release ``name``, newest first.

    A revision stored by both drivers is reported once; undecodable records
    are left out.
    """
    releases: list[HelmRelease] = []
    seen: set[int] = set()
    for obj in _storage_objects(index, name, namespace):
        release = decode_storage_object(obj)
        if release is None or release.revision in seen:
            continue
        seen.add(release.revision)
        releases.append(release)
    return releases
