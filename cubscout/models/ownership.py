"""Ownership classification result types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class OwnerType(StrEnum):
    """Management convention that owns an object."""

    FLUX = "flux"
    ARGO = "argo"
    HELM = "helm"
    TERRAFORM = "terraform"
    CONFIGHUB = "confighub"
    K8S = "k8s"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class OwnershipResult:
    """Who manages an object.

    ``sub_type`` narrows the convention (e.g. "kustomization" vs
    "helmrelease" for Flux, the lowercase owner kind for native ownership).
    ``name``/``namespace`` identify the owning entity, not the object.
    """

    type: OwnerType
    sub_type: str = ""
    name: str = ""
    namespace: str = ""

    @property
    def is_gitops(self) -> bool:
        return self.type in (OwnerType.FLUX, OwnerType.ARGO)

    @property
    def is_managed(self) -> bool:
        """False for native-only and unclassified objects."""
        return self.type not in (OwnerType.K8S, OwnerType.UNKNOWN)


UNKNOWN_OWNERSHIP = OwnershipResult(type=OwnerType.UNKNOWN)
