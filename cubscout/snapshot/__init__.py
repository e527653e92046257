"""Point-in-time snapshot of cluster objects.

Exposes:
    SnapshotIndex  -- immutable index with checked lookups and selector queries.
    LabelSelector  -- set-based label selector evaluation and rendering.
    load_snapshot  -- read a JSON snapshot file.
    dump_snapshot  -- write a JSON snapshot file.
"""

from cubscout.snapshot.index import SnapshotIndex
from cubscout.snapshot.loader import build_index, dump_snapshot, load_snapshot
from cubscout.snapshot.selectors import LabelSelector, Operator, Requirement, SelectorError

__all__ = [
    "LabelSelector",
    "Operator",
    "Requirement",
    "SelectorError",
    "SnapshotIndex",
    "build_index",
    "dump_snapshot",
    "load_snapshot",
]
