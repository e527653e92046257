"""Shared fixtures for cub-scout integration tests.

Provides a realistic multi-tool cluster snapshot (Flux, Argo CD, Helm and
hand-applied objects side by side, with a few deliberate defects) written to
disk, so integration tests can exercise the full load -> classify -> trace ->
scan pipeline without touching a real cluster.
"""

from __future__ import annotations

import base64
import gzip
import json
from pathlib import Path
from typing import Any

import pytest

from cubscout.snapshot import SnapshotIndex, load_snapshot

# ---------------------------------------------------------------------------
# Object factory helpers
# ---------------------------------------------------------------------------

_READY = {"type": "Ready", "status": "True", "reason": "ReconciliationSucceeded"}

FLUX_APPS = {
    "kustomize.toolkit.fluxcd.io/name": "apps",
    "kustomize.toolkit.fluxcd.io/namespace": "flux-system",
}


def make_raw(
    kind: str,
    name: str,
    namespace: str = "shop",
    api_version: str = "v1",
    labels: dict[str, str] | None = None,
    annotations: dict[str, str] | None = None,
    owner: tuple[str, str] | None = None,
    spec: dict[str, Any] | None = None,
    status: dict[str, Any] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Create a raw object document as the API server would return it."""
    metadata: dict[str, Any] = {"name": name, "namespace": namespace}
    if labels:
        metadata["labels"] = labels
    if annotations:
        metadata["annotations"] = annotations
    if owner:
        metadata["ownerReferences"] = [
            {"apiVersion": "apps/v1", "kind": owner[0], "name": owner[1], "controller": True}
        ]
    raw: dict[str, Any] = {"apiVersion": api_version, "kind": kind, "metadata": metadata, **extra}
    if spec is not None:
        raw["spec"] = spec
    if status is not None:
        raw["status"] = status
    return raw


def make_workload(
    kind: str,
    name: str,
    replicas: int = 2,
    ready: int | None = None,
    template_labels: dict[str, str] | None = None,
    **kwargs: Any,
) -> dict[str, Any]:
    ready = replicas if ready is None else ready
    return make_raw(
        kind,
        name,
        api_version="apps/v1",
        spec={
            "replicas": replicas,
            "selector": {"matchLabels": template_labels or {"app": name}},
            "template": {"metadata": {"labels": template_labels or {"app": name}}},
        },
        status={"replicas": replicas, "readyReplicas": ready, "availableReplicas": ready},
        **kwargs,
    )


def make_helm_release_secret(release: str, revision: int, namespace: str, status: str = "deployed") -> dict[str, Any]:
    """Helm v3 storage Secret: base64 (API) over base64 (Helm) over gzip(JSON)."""
    document = {
        "name": release,
        "namespace": namespace,
        "version": revision,
        "info": {"status": status, "description": "Install complete"},
        "chart": {
            "metadata": {
                "name": release,
                "version": "18.6.1",
                "appVersion": "7.2.4",
                "sources": ["https://github.com/bitnami/charts/tree/main/bitnami/redis"],
            }
        },
    }
    helm_payload = base64.b64encode(gzip.compress(json.dumps(document).encode())).decode()
    return make_raw(
        "Secret",
        f"sh.helm.release.v1.{release}.v{revision}",
        namespace=namespace,
        labels={"owner": "helm", "name": release, "status": status, "version": str(revision)},
        type="helm.sh/release.v1",
        data={"release": base64.b64encode(helm_payload.encode()).decode()},
    )


def cluster_objects() -> list[dict[str, Any]]:
    """A small shop cluster managed by several tools at once."""
    helm_labels = {"app.kubernetes.io/managed-by": "Helm", "app.kubernetes.io/instance": "cache"}
    argo_labels = {"app.kubernetes.io/instance": "storefront", "argocd.argoproj.io/instance": "storefront"}
    return [
        # Flux: GitRepository -> Kustomization -> Deployment -> ReplicaSet -> Pod
        make_raw(
            "GitRepository",
            "fleet",
            namespace="flux-system",
            api_version="source.toolkit.fluxcd.io/v1",
            spec={"url": "https://github.com/acme/fleet.git", "ref": {"branch": "main"}},
            status={"conditions": [_READY], "artifact": {"revision": "main@sha1:5e1c0ffee0a1b2"}},
        ),
        make_raw(
            "Kustomization",
            "apps",
            namespace="flux-system",
            api_version="kustomize.toolkit.fluxcd.io/v1",
            spec={"path": "./clusters/prod/apps", "sourceRef": {"kind": "GitRepository", "name": "fleet"}},
            status={"conditions": [_READY], "lastAppliedRevision": "main@sha1:5e1c0ffee0a1b2"},
        ),
        make_workload("Deployment", "checkout", labels=FLUX_APPS),
        make_workload(
            "ReplicaSet",
            "checkout-6d8f9",
            owner=("Deployment", "checkout"),
            template_labels={"app": "checkout", "pod-template-hash": "6d8f9"},
        ),
        make_raw(
            "Pod",
            "checkout-6d8f9-abcde",
            labels={"app": "checkout", "pod-template-hash": "6d8f9"},
            owner=("ReplicaSet", "checkout-6d8f9"),
            spec={"containers": [{"name": "app", "envFrom": [{"secretRef": {"name": "checkout-db"}}]}]},
            status={"phase": "Running"},
        ),
        make_raw(
            "Pod",
            "checkout-6d8f9-fghij",
            labels={"app": "checkout", "pod-template-hash": "6d8f9"},
            owner=("ReplicaSet", "checkout-6d8f9"),
            spec={"containers": [{"name": "app", "envFrom": [{"secretRef": {"name": "checkout-db"}}]}]},
            status={"phase": "Running"},
        ),
        make_raw("Secret", "checkout-db", type="Opaque", labels=FLUX_APPS),
        make_raw("Service", "checkout", labels=FLUX_APPS, spec={"selector": {"app": "checkout"}}),
        make_raw(
            "PodDisruptionBudget",
            "checkout",
            api_version="policy/v1",
            labels=FLUX_APPS,
            spec={"minAvailable": 2, "selector": {"matchLabels": {"app": "checkout"}}},
            status={"disruptionsAllowed": 0, "currentHealthy": 2, "desiredHealthy": 2, "expectedPods": 2},
        ),
        # Argo CD: Application with a Git source -> Deployment (one replica not ready)
        make_raw(
            "Application",
            "storefront",
            namespace="argocd",
            api_version="argoproj.io/v1alpha1",
            spec={
                "source": {
                    "repoURL": "https://github.com/acme/storefront-deploy.git",
                    "path": "overlays/prod",
                    "targetRevision": "main",
                }
            },
            status={
                "health": {"status": "Progressing"},
                "sync": {"status": "Synced", "revision": "9f8e7d6c5b4a"},
            },
        ),
        make_workload("Deployment", "storefront", replicas=3, ready=1, labels=argo_labels),
        make_raw(
            "Service",
            "storefront",
            labels=argo_labels,
            spec={"selector": {"app": "store-front"}},
        ),
        # Helm: StatefulSet from a release stored in a Secret
        make_workload("StatefulSet", "cache-redis-master", replicas=1, labels=helm_labels),
        make_helm_release_secret("cache", 1, "shop", status="superseded"),
        make_helm_release_secret("cache", 2, "shop"),
        make_raw(
            "Pod",
            "cache-redis-master-0",
            labels={"app": "cache-redis-master"},
            owner=("StatefulSet", "cache-redis-master"),
            spec={"volumes": [{"name": "data", "persistentVolumeClaim": {"claimName": "redis-data-cache-0"}}]},
            status={"phase": "Running"},
        ),
        # Hand-applied objects
        make_raw("ConfigMap", "feature-flags", data={"beta": "true"}),
        make_raw(
            "NetworkPolicy",
            "allow-payments",
            api_version="networking.k8s.io/v1",
            spec={"podSelector": {"matchExpressions": [{"key": "app", "operator": "In", "values": ["payments"]}]}},
        ),
        make_raw(
            "HorizontalPodAutoscaler",
            "checkout",
            api_version="autoscaling/v2",
            spec={"scaleTargetRef": {"kind": "Deployment", "name": "checkout"}, "minReplicas": 2, "maxReplicas": 6},
        ),
    ]


COLLECTED_KINDS = [
    "Pod",
    "Service",
    "Secret",
    "ConfigMap",
    "PersistentVolumeClaim",
    "Deployment",
    "ReplicaSet",
    "StatefulSet",
    "PodDisruptionBudget",
    "NetworkPolicy",
    "HorizontalPodAutoscaler",
    "GitRepository",
    "Kustomization",
    "Application",
]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def snapshot_path(tmp_path: Path) -> Path:
    """The shop cluster written in the native snapshot envelope."""
    path = tmp_path / "shop.json"
    document = {
        "version": "1",
        "cluster": "shop-prod",
        "generatedAt": "2026-06-01T09:30:00Z",
        "collectedKinds": COLLECTED_KINDS,
        "objects": cluster_objects(),
    }
    path.write_text(json.dumps(document, indent=2))
    return path


@pytest.fixture
def shop_index(snapshot_path: Path) -> SnapshotIndex:
    return load_snapshot(snapshot_path)
