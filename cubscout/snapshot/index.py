"""Immutable point-in-time index over cluster objects.

Built once from a collaborator's listing, then shared read-only by the
classifier, resolver and scanner.  A refreshed snapshot is a new index;
an existing one is never mutated.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator
from datetime import UTC, datetime
from types import MappingProxyType

from cubscout.models.objects import ClusterObject, ResourceKey
from cubscout.snapshot.selectors import LabelSelector

_LabelPair = tuple[str, str]


class SnapshotIndex:
    """Checked lookups by identity, per-namespace listing, and selector queries.

    ``collected_kinds`` lists the kinds the collaborator actually listed,
    including ones that came back empty.  When it is not given, every kind
    counts as observed: an absent object is genuinely absent.
    """

    def __init__(
        self,
        objects: Iterable[ClusterObject],
        collected_kinds: Iterable[str] | None = None,
        cluster: str = "",
        generated_at: datetime | None = None,
    ) -> None:
        by_key: dict[ResourceKey, ClusterObject] = {}
        for obj in objects:
            # A later duplicate replaces the earlier one.
            by_key[obj.key] = obj

        by_bucket: dict[tuple[str, str], list[ClusterObject]] = defaultdict(list)
        label_index: dict[tuple[str, str], dict[_LabelPair, set[ResourceKey]]] = defaultdict(
            lambda: defaultdict(set)
        )
        for key in sorted(by_key, key=lambda k: (k.kind, k.namespace, k.name)):
            obj = by_key[key]
            by_bucket[(key.kind, key.namespace)].append(obj)
            for pair in obj.labels.items():
                label_index[(key.kind, key.namespace)][pair].add(key)

        self._by_key = MappingProxyType(by_key)
        self._by_bucket = {bucket: tuple(objs) for bucket, objs in by_bucket.items()}
        self._label_index = {bucket: {pair: frozenset(keys) for pair, keys in pairs.items()}
                             for bucket, pairs in label_index.items()}
        self._collected: frozenset[str] | None = None
        if collected_kinds is not None:
            self._collected = frozenset(collected_kinds) | frozenset(k.kind for k in by_key)
        self.cluster = cluster
        self.generated_at = generated_at or datetime.now(tz=UTC)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, kind: str, namespace: str, name: str) -> ClusterObject | None:
        return self._by_key.get(ResourceKey(kind, namespace, name))

    def get_key(self, key: ResourceKey) -> ClusterObject | None:
        return self._by_key.get(key)

    def list(self, kind: str, namespace: str | None = None) -> list[ClusterObject]:
        """Objects of ``kind``, ordered by namespace then name."""
        if namespace is not None:
            return list(self._by_bucket.get((kind, namespace), ()))
        out: list[ClusterObject] = []
        for (bucket_kind, _ns), objs in sorted(self._by_bucket.items()):
            if bucket_kind == kind:
                out.extend(objs)
        return out

    def find_by_name(self, kind: str, name: str) -> list[ClusterObject]:
        """All objects of ``kind`` named ``name``, across namespaces."""
        return [obj for obj in self.list(kind) if obj.name == name]

    def namespaces(self, kind: str | None = None) -> list[str]:
        return sorted({ns for (k, ns) in self._by_bucket if kind is None or k == kind})

    # ------------------------------------------------------------------
    # Selector queries
    # ------------------------------------------------------------------

    def select(self, kind: str, namespace: str, selector: LabelSelector) -> list[ClusterObject]:
        """Objects of ``kind`` in exactly ``namespace`` that satisfy ``selector``.

        Equality clauses narrow the candidate set through the label index
        before the full selector is evaluated.
        """
        bucket = self._by_bucket.get((kind, namespace), ())
        if not bucket:
            return []
        if not selector.match_labels:
            return [obj for obj in bucket if selector.matches(obj.labels)]
        pairs = self._label_index.get((kind, namespace), {})
        candidates: frozenset[ResourceKey] | None = None
        for pair in selector.match_labels:
            keys = pairs.get(pair, frozenset())
            candidates = keys if candidates is None else candidates & keys
            if not candidates:
                return []
        assert candidates is not None
        return [obj for obj in bucket if obj.key in candidates and selector.matches(obj.labels)]

    def namespaces_matching(self, kind: str, selector: LabelSelector, exclude: str = "") -> list[str]:
        """Namespaces other than ``exclude`` holding objects that satisfy ``selector``."""
        return [ns for ns in self.namespaces(kind) if ns != exclude and self.select(kind, ns, selector)]

    # ------------------------------------------------------------------
    # Collection metadata
    # ------------------------------------------------------------------

    def observed(self, kind: str) -> bool:
        """Whether ``kind`` was listed when the snapshot was taken.

        Always true for an index built without an explicit kind list.
        """
        return self._collected is None or kind in self._collected

    @property
    def restricted(self) -> bool:
        """True when only an explicit set of kinds was collected."""
        return self._collected is not None

    @property
    def collected_kinds(self) -> frozenset[str]:
        """The explicit collected set, else the kinds present."""
        if self._collected is None:
            return frozenset(k.kind for k in self._by_key)
        return self._collected

    def kinds(self) -> list[str]:
        return sorted({k.kind for k in self._by_key})

    def __len__(self) -> int:
        return len(self._by_key)

    def __iter__(self) -> Iterator[ClusterObject]:
        for _bucket, objs in sorted(self._by_bucket.items()):
            yield from objs

    def __contains__(self, key: object) -> bool:
        return key in self._by_key
