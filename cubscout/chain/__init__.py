"""Provenance chain resolution.

Exposes:
    resolve            -- Chain for one object against a snapshot index.
    resolve_many       -- Chains for independent targets.
    resolve_ref        -- resolve by (kind, namespace, name).
    detect_drift       -- live fields that differ from the last-applied record.
    parse_registry_url -- decode oci:// URLs, including product registry coordinates.
    short_revision     -- compact display form of a source revision.
"""

from cubscout.chain.drift import LAST_APPLIED_ANNOTATION, detect_drift
from cubscout.chain.resolver import DEFAULT_MAX_HOPS, object_link, resolve, resolve_many, resolve_ref
from cubscout.chain.sources import (
    confighub_unit,
    is_product_registry,
    parse_registry_url,
    repo_display_name,
    short_revision,
)

__all__ = [
    "DEFAULT_MAX_HOPS",
    "LAST_APPLIED_ANNOTATION",
    "confighub_unit",
    "detect_drift",
    "is_product_registry",
    "object_link",
    "parse_registry_url",
    "repo_display_name",
    "resolve",
    "resolve_many",
    "resolve_ref",
    "short_revision",
]
