"""Snapshot file I/O.

Two input shapes are accepted:

* the native envelope written by ``dump_snapshot``::

      {"version": "1", "cluster": "...", "generatedAt": "...",
       "collectedKinds": [...], "objects": [...]}

* a plain ``kind: List`` document as produced by ``kubectl get ... -o json``.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from cubscout.errors import SnapshotFormatError
from cubscout.models.objects import ClusterObject
from cubscout.observability.logging import get_logger
from cubscout.snapshot.index import SnapshotIndex

_logger = get_logger("snapshot.loader")

SNAPSHOT_VERSION = "1"


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def build_index(document: Any, source: str = "<memory>") -> SnapshotIndex:
    """Build an index from an already-decoded snapshot document."""
    if not isinstance(document, dict):
        raise SnapshotFormatError(source, "top-level value must be an object")

    if "objects" in document:
        items = document["objects"]
        collected = document.get("collectedKinds")
    elif document.get("kind") == "List" or "items" in document:
        items = document.get("items")
        collected = None
    else:
        raise SnapshotFormatError(source, "expected an 'objects' or 'items' array")

    if not isinstance(items, list):
        raise SnapshotFormatError(source, "object list is not an array")
    if collected is not None and not (isinstance(collected, list) and all(isinstance(k, str) for k in collected)):
        raise SnapshotFormatError(source, "collectedKinds must be a list of strings")

    objects: list[ClusterObject] = []
    skipped = 0
    for position, raw in enumerate(items):
        obj = ClusterObject.from_dict(raw) if isinstance(raw, dict) else None
        if obj is None:
            skipped += 1
            _logger.warning("snapshot_item_skipped", source=source, position=position)
            continue
        objects.append(obj)

    index = SnapshotIndex(
        objects,
        collected_kinds=collected,
        cluster=str(document.get("cluster") or ""),
        generated_at=_parse_timestamp(document.get("generatedAt")),
    )
    _logger.info("snapshot_loaded", source=source, objects=len(index), skipped=skipped)
    return index


def load_snapshot(path: str | Path) -> SnapshotIndex:
    """Read a snapshot file into an immutable index."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SnapshotFormatError(str(path), exc.strerror or str(exc)) from exc
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotFormatError(str(path), f"not valid JSON ({exc.msg} at line {exc.lineno})") from exc
    return build_index(document, source=str(path))


def snapshot_document(index: SnapshotIndex) -> dict[str, Any]:
    """Native envelope; ``collectedKinds`` only when the index is restricted."""
    document: dict[str, Any] = {
        "version": SNAPSHOT_VERSION,
        "cluster": index.cluster,
        "generatedAt": index.generated_at.isoformat().replace("+00:00", "Z"),
    }
    if index.restricted:
        document["collectedKinds"] = sorted(index.collected_kinds)
    document["objects"] = [obj.to_dict() for obj in index]
    return document


def dump_snapshot(index: SnapshotIndex, path: str | Path) -> None:
    """Write ``index`` in the native envelope format."""
    Path(path).write_text(json.dumps(snapshot_document(index), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    _logger.info("snapshot_written", path=str(path), objects=len(index))
