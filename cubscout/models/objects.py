"""Cluster object representation and tolerant nested-field accessors.

Every component reads cluster data through ``ClusterObject`` and the
``nested_*`` helpers.  The helpers never raise: a missing path or a value of
the wrong type yields ``None`` so callers can degrade instead of aborting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

_MISSING = object()


# ---------------------------------------------------------------------------
# Nested accessors
# ---------------------------------------------------------------------------


def nested_value(doc: Any, *path: str) -> Any:
    """Walk ``path`` through nested mappings; ``None`` when any hop is absent."""
    current = doc
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key, _MISSING)
        if current is _MISSING:
            return None
    return current


def nested_string(doc: Any, *path: str) -> str | None:
    value = nested_value(doc, *path)
    return value if isinstance(value, str) else None


def nested_int(doc: Any, *path: str) -> int | None:
    value = nested_value(doc, *path)
    # bool is an int subclass; a boolean is never a count
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def nested_bool(doc: Any, *path: str) -> bool | None:
    value = nested_value(doc, *path)
    return value if isinstance(value, bool) else None


def nested_list(doc: Any, *path: str) -> list[Any] | None:
    value = nested_value(doc, *path)
    return value if isinstance(value, list) else None


def nested_map(doc: Any, *path: str) -> dict[str, Any] | None:
    value = nested_value(doc, *path)
    return value if isinstance(value, dict) else None


def _string_map(value: Any) -> dict[str, str]:
    """Keep only string->string pairs of a label/annotation map."""
    if not isinstance(value, dict):
        return {}
    return {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}


# ---------------------------------------------------------------------------
# Identity types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResourceKey:
    """Index key of a cluster object.  ``namespace`` is "" when cluster-scoped."""

    kind: str
    namespace: str
    name: str

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.namespace}/{self.name}"
        return f"{self.kind}/{self.name}"


@dataclass(frozen=True)
class ResourceRef:
    """A human-facing pointer at an object that may or may not exist."""

    kind: str
    namespace: str
    name: str

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.name} in {self.namespace}"
        return f"{self.kind}/{self.name}"

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(self.kind, self.namespace, self.name)


@dataclass(frozen=True)
class OwnerReference:
    """Native owner link from ``metadata.ownerReferences``."""

    api_version: str
    kind: str
    name: str
    controller: bool = False
    uid: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> OwnerReference | None:
        kind = nested_string(raw, "kind")
        name = nested_string(raw, "name")
        if not kind or not name:
            return None
        return cls(
            api_version=nested_string(raw, "apiVersion") or "",
            kind=kind,
            name=name,
            controller=nested_bool(raw, "controller") is True,
            uid=nested_string(raw, "uid") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"apiVersion": self.api_version, "kind": self.kind, "name": self.name}
        if self.controller:
            out["controller"] = True
        if self.uid:
            out["uid"] = self.uid
        return out


# ---------------------------------------------------------------------------
# ClusterObject
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClusterObject:
    """One resource as observed in a snapshot.

    Immutable: nothing downstream may change an object after it is indexed.
    ``status`` is ``None`` when the raw document carried no status at all,
    which is distinct from an empty status mapping.
    """

    api_version: str
    kind: str
    namespace: str
    name: str
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    owner_references: tuple[OwnerReference, ...] = ()
    spec: dict[str, Any] = field(default_factory=dict)
    status: dict[str, Any] | None = None
    data: dict[str, Any] = field(default_factory=dict)
    creation_timestamp: str = ""

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(self.kind, self.namespace, self.name)

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(self.kind, self.namespace, self.name)

    @property
    def api_group(self) -> str:
        """API group part of ``api_version`` ("" for the core group)."""
        if "/" not in self.api_version:
            return ""
        return self.api_version.split("/", 1)[0]

    def controller_reference(self) -> OwnerReference | None:
        """The controlling owner reference, else the first one."""
        for ref in self.owner_references:
            if ref.controller:
                return ref
        return self.owner_references[0] if self.owner_references else None

    def label(self, key: str) -> str:
        return self.labels.get(key, "")

    def annotation(self, key: str) -> str:
        return self.annotations.get(key, "")

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ClusterObject | None:
        """Build from a raw orchestrator document.

        Returns ``None`` when the document has no kind or name, since such an
        item cannot be addressed.
        """
        kind = nested_string(raw, "kind")
        name = nested_string(raw, "metadata", "name")
        if not kind or not name:
            return None
        owners = tuple(
            ref
            for ref in (OwnerReference.from_dict(o) for o in nested_list(raw, "metadata", "ownerReferences") or [])
            if ref is not None
        )
        status = raw.get("status")
        data: dict[str, Any] = {}
        for data_field in ("data", "stringData", "binaryData"):
            payload = nested_map(raw, data_field)
            if payload:
                data[data_field] = payload
        return cls(
            api_version=nested_string(raw, "apiVersion") or "",
            kind=kind,
            namespace=nested_string(raw, "metadata", "namespace") or "",
            name=name,
            labels=_string_map(nested_value(raw, "metadata", "labels")),
            annotations=_string_map(nested_value(raw, "metadata", "annotations")),
            owner_references=owners,
            spec=nested_map(raw, "spec") or {},
            status=status if isinstance(status, dict) else None,
            data=data,
            creation_timestamp=nested_string(raw, "metadata", "creationTimestamp") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise back to the raw document shape ``from_dict`` accepts."""
        metadata: dict[str, Any] = {"name": self.name}
        if self.namespace:
            metadata["namespace"] = self.namespace
        if self.labels:
            metadata["labels"] = dict(self.labels)
        if self.annotations:
            metadata["annotations"] = dict(self.annotations)
        if self.owner_references:
            metadata["ownerReferences"] = [ref.to_dict() for ref in self.owner_references]
        if self.creation_timestamp:
            metadata["creationTimestamp"] = self.creation_timestamp
        out: dict[str, Any] = {"apiVersion": self.api_version, "kind": self.kind, "metadata": metadata}
        if self.spec:
            out["spec"] = self.spec
        if self.status is not None:
            out["status"] = self.status
        out.update(self.data)
        return out
