"""Live snapshot collection through kubernetes-asyncio.

Every kind in the catalog is listed concurrently.  A kind that fails (CRD
not installed, RBAC denies list, API timeout) is logged and counted, and is
left out of the snapshot's collected kinds so the scanner skips the checks
that depend on it instead of reporting false dangling references.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from cubscout.collector.catalog import DEFAULT_CATALOG, KindSpec
from cubscout.errors import CollectorError
from cubscout.models.config import CollectorConfig
from cubscout.models.objects import ClusterObject
from cubscout.observability.logging import get_logger
from cubscout.observability.metrics import collector_errors_total, snapshot_collect_seconds, snapshot_objects
from cubscout.snapshot.index import SnapshotIndex

_logger = get_logger("collector")

# Secrets keep their payload only when it is a Helm release record.
_HELM_RELEASE_SECRET_TYPE = "helm.sh/release.v1"
_SECRET_PAYLOAD_FIELDS = ("data", "stringData")


async def load_client_config() -> str:
    """Configure kubernetes-asyncio from the service account, else kubeconfig.

    Returns the source that was used.
    """
    import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]

    try:
        # load_incluster_config() is synchronous in kubernetes-asyncio
        k8s_config.load_incluster_config()
        _logger.info("k8s_client_configured", source="in-cluster")
        return "in-cluster"
    except k8s_config.ConfigException:
        await k8s_config.load_kube_config()
        _logger.info("k8s_client_configured", source="kubeconfig")
        return "kubeconfig"


def redact_secret(raw: dict[str, Any]) -> dict[str, Any]:
    """Drop the payload of any Secret that is not a Helm release record."""
    if raw.get("kind") != "Secret" or raw.get("type") == _HELM_RELEASE_SECRET_TYPE:
        return raw
    return {k: v for k, v in raw.items() if k not in _SECRET_PAYLOAD_FIELDS}


class SnapshotCollector:
    """Lists the catalog from the API server into an immutable SnapshotIndex.

    The kubernetes-asyncio configuration must already be loaded (in-cluster
    or kubeconfig) before ``collect`` is called.
    """

    def __init__(
        self,
        config: CollectorConfig | None = None,
        cluster: str = "",
        catalog: Sequence[KindSpec] = DEFAULT_CATALOG,
    ) -> None:
        self._config = config or CollectorConfig()
        self._cluster = cluster
        self._catalog = tuple(catalog)

    async def collect(self) -> SnapshotIndex:
        """List every kind and build a fresh index from what succeeded."""
        started = time.monotonic()
        async with self._client() as api_client:
            results = await asyncio.gather(
                *(self._collect_kind(api_client, spec) for spec in self._catalog),
                return_exceptions=True,
            )

        objects: list[ClusterObject] = []
        collected: list[str] = []
        failed: list[str] = []
        for spec, result in zip(self._catalog, results, strict=True):
            if isinstance(result, BaseException):
                error = result if isinstance(result, CollectorError) else CollectorError(spec.kind, result)
                failed.append(spec.kind)
                collector_errors_total.labels(kind=spec.kind, error_type=str(error.error_type)).inc()
                _logger.warning(
                    "kind_list_failed",
                    kind=spec.kind,
                    error_type=str(error.error_type),
                    error=str(error.cause),
                )
                continue
            collected.append(spec.kind)
            objects.extend(result)

        index = SnapshotIndex(objects, collected_kinds=collected, cluster=self._cluster)
        elapsed = time.monotonic() - started
        snapshot_collect_seconds.observe(elapsed)
        snapshot_objects.set(len(index))
        _logger.info(
            "snapshot_collected",
            objects=len(index),
            kinds=len(collected),
            failed_kinds=failed,
            duration_seconds=round(elapsed, 3),
        )
        return index

    # ------------------------------------------------------------------
    # Per-kind listing
    # ------------------------------------------------------------------

    async def _collect_kind(self, api_client: Any, spec: KindSpec) -> list[ClusterObject]:
        namespaces: Sequence[str | None] = self._config.namespaces or (None,)
        objects: list[ClusterObject] = []
        for namespace in namespaces:
            try:
                items = await asyncio.wait_for(
                    self._fetch(api_client, spec, namespace),
                    timeout=self._config.timeout_seconds,
                )
            except Exception as exc:
                raise CollectorError(spec.kind, exc) from exc
            for raw in items:
                raw.setdefault("apiVersion", spec.api_version)
                raw.setdefault("kind", spec.kind)
                obj = ClusterObject.from_dict(redact_secret(raw))
                if obj is not None:
                    objects.append(obj)
        _logger.debug("kind_listed", kind=spec.kind, count=len(objects))
        return objects

    async def _fetch(self, api_client: Any, spec: KindSpec, namespace: str | None) -> list[dict[str, Any]]:
        """Raw camelCase item dicts for one kind, optionally in one namespace."""
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        timeout = self._config.timeout_seconds
        if spec.custom:
            custom = k8s_client.CustomObjectsApi(api_client)
            if namespace is None:
                response = await custom.list_cluster_custom_object(
                    spec.group, spec.version, spec.plural, _request_timeout=timeout
                )
            else:
                response = await custom.list_namespaced_custom_object(
                    spec.group, spec.version, namespace, spec.plural, _request_timeout=timeout
                )
            return [item for item in response.get("items", []) if isinstance(item, dict)]

        api = getattr(k8s_client, spec.api)(api_client)
        if namespace is None:
            response = await getattr(api, f"list_{spec.resource}_for_all_namespaces")(_request_timeout=timeout)
        else:
            response = await getattr(api, f"list_namespaced_{spec.resource}")(namespace, _request_timeout=timeout)
        # Typed models serialize back to the wire (camelCase) shape; list
        # items carry no apiVersion/kind, so the caller fills them in.
        document = api_client.sanitize_for_serialization(response)
        return [item for item in document.get("items", []) if isinstance(item, dict)]

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[Any]:
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        async with k8s_client.ApiClient() as api_client:
            yield api_client
