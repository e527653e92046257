"""Ownership classification across management conventions.

Exposes:
    classify      -- OwnershipResult for one object (Flux > Argo > Helm >
                     Terraform > ConfigHub > native > unknown).
    build_map     -- classified and status-inferred rows for many objects.
    summarize     -- aggregate counts over map rows.
"""

from cubscout.ownership.classifier import DETECTORS, classify, display_owner, parse_tracking_id
from cubscout.ownership.summary import MapEntry, OwnerStats, build_map, summarize

__all__ = [
    "DETECTORS",
    "MapEntry",
    "OwnerStats",
    "build_map",
    "classify",
    "display_owner",
    "parse_tracking_id",
    "summarize",
]
