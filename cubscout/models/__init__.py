"""Core data structures for cub-scout."""

from cubscout.models.chain import (
    Chain,
    ChainEnd,
    ChainLink,
    ConfigHubUnit,
    FieldDrift,
    HistoryEntry,
    RegistryTarget,
    SourceMetadata,
)
from cubscout.models.config import CubScoutConfig
from cubscout.models.findings import Finding, Severity
from cubscout.models.objects import (
    ClusterObject,
    OwnerReference,
    ResourceKey,
    ResourceRef,
)
from cubscout.models.ownership import UNKNOWN_OWNERSHIP, OwnershipResult, OwnerType
from cubscout.models.status import BROKEN_STATES, StatusState

__all__ = [
    "BROKEN_STATES",
    "Chain",
    "ChainEnd",
    "ChainLink",
    "ClusterObject",
    "ConfigHubUnit",
    "CubScoutConfig",
    "FieldDrift",
    "Finding",
    "HistoryEntry",
    "OwnerReference",
    "OwnerType",
    "OwnershipResult",
    "RegistryTarget",
    "ResourceKey",
    "ResourceRef",
    "Severity",
    "SourceMetadata",
    "StatusState",
    "UNKNOWN_OWNERSHIP",
]
