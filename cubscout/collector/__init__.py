"""Live cluster collection for cub-scout.

Submodules
----------
catalog -- KindSpec and the default list of kinds to collect.
lister  -- SnapshotCollector: concurrent per-kind listing into a SnapshotIndex.
"""

from cubscout.collector.catalog import BUILTIN_KINDS, CUSTOM_KINDS, DEFAULT_CATALOG, KindSpec
from cubscout.collector.lister import SnapshotCollector, load_client_config, redact_secret

__all__ = [
    "BUILTIN_KINDS",
    "CUSTOM_KINDS",
    "DEFAULT_CATALOG",
    "KindSpec",
    "SnapshotCollector",
    "load_client_config",
    "redact_secret",
]
