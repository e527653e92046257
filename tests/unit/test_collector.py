"""Tests for live snapshot collection with the API server faked out."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import kubernetes_asyncio.client
import pytest

from cubscout.collector import DEFAULT_CATALOG, KindSpec, SnapshotCollector, redact_secret
from cubscout.models.config import CollectorConfig

_POD = KindSpec("Pod", "v1", "pods", "CoreV1Api", "pod")
_SECRET = KindSpec("Secret", "v1", "secrets", "CoreV1Api", "secret")
_KUSTOMIZATION = KindSpec("Kustomization", "kustomize.toolkit.fluxcd.io/v1", "kustomizations")


class _Forbidden(Exception):
    def __init__(self) -> None:
        super().__init__("(403) Reason: Forbidden")
        self.status = 403


class _FakeCollector(SnapshotCollector):
    """Serves canned items per (kind, namespace) instead of calling the API server."""

    def __init__(self, items: dict[str, Any], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.items = items
        self.calls: list[tuple[str, str | None]] = []

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[Any]:
        yield object()

    async def _fetch(self, api_client: Any, spec: KindSpec, namespace: str | None) -> list[dict[str, Any]]:
        self.calls.append((spec.kind, namespace))
        result = self.items[spec.kind]
        if isinstance(result, Exception):
            raise result
        return [dict(item) for item in result if namespace is None or item["metadata"]["namespace"] == namespace]


def _item(name: str, namespace: str = "prod", **extra: Any) -> dict[str, Any]:
    return {"metadata": {"name": name, "namespace": namespace}, **extra}


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class TestCatalog:
    def test_builtin_and_custom_kinds(self) -> None:
        assert not _POD.custom
        assert _KUSTOMIZATION.custom
        assert _KUSTOMIZATION.group == "kustomize.toolkit.fluxcd.io"
        assert _KUSTOMIZATION.version == "v1"
        assert _POD.group == ""

    def test_default_catalog_covers_scanned_and_traced_kinds(self) -> None:
        kinds = {spec.kind for spec in DEFAULT_CATALOG}
        for kind in ("Pod", "Service", "Secret", "NetworkPolicy", "PodDisruptionBudget", "HelmRelease",
                     "Kustomization", "GitRepository", "Application", "HTTPRoute"):
            assert kind in kinds
        assert len(kinds) == len(DEFAULT_CATALOG)


# ---------------------------------------------------------------------------
# Secret redaction
# ---------------------------------------------------------------------------


class TestRedactSecret:
    def test_plain_secret_payload_dropped(self) -> None:
        raw = {"kind": "Secret", "type": "Opaque", "metadata": {"name": "db"}, "data": {"pw": "aHVudGVy"},
               "stringData": {"user": "admin"}}
        redacted = redact_secret(raw)
        assert "data" not in redacted
        assert "stringData" not in redacted
        assert redacted["metadata"] == {"name": "db"}

    def test_helm_release_secret_kept(self) -> None:
        raw = {"kind": "Secret", "type": "helm.sh/release.v1", "metadata": {"name": "r"}, "data": {"release": "x"}}
        assert redact_secret(raw) == raw

    def test_other_kinds_untouched(self) -> None:
        raw = {"kind": "ConfigMap", "metadata": {"name": "c"}, "data": {"k": "v"}}
        assert redact_secret(raw) == raw


# ---------------------------------------------------------------------------
# SnapshotCollector.collect
# ---------------------------------------------------------------------------


class TestCollect:
    async def test_collects_every_kind(self) -> None:
        collector = _FakeCollector(
            {
                "Pod": [_item("web-1"), _item("api-1", namespace="staging")],
                "Secret": [_item("db", type="Opaque", data={"pw": "aHVudGVy"})],
            },
            catalog=(_POD, _SECRET),
            cluster="dev",
        )
        index = await collector.collect()

        assert len(index) == 3
        assert index.cluster == "dev"
        assert index.observed("Pod") and index.observed("Secret")
        pod = index.get("Pod", "prod", "web-1")
        assert pod is not None
        assert pod.api_version == "v1"
        secret = index.get("Secret", "prod", "db")
        assert secret is not None
        assert secret.data == {}

    async def test_failed_kind_is_not_collected(self) -> None:
        collector = _FakeCollector(
            {"Pod": [_item("web-1")], "Kustomization": _Forbidden()},
            catalog=(_POD, _KUSTOMIZATION),
        )
        index = await collector.collect()

        assert index.observed("Pod")
        assert not index.observed("Kustomization")
        assert len(index) == 1

    async def test_empty_kind_is_still_collected(self) -> None:
        collector = _FakeCollector({"Pod": [], "Secret": []}, catalog=(_POD, _SECRET))
        index = await collector.collect()
        assert len(index) == 0
        assert index.observed("Secret")

    async def test_namespace_scoped_collection(self) -> None:
        collector = _FakeCollector(
            {"Pod": [_item("web-1"), _item("api-1", namespace="staging"), _item("x", namespace="other")]},
            catalog=(_POD,),
            config=CollectorConfig(namespaces=("prod", "staging")),
        )
        index = await collector.collect()

        assert collector.calls == [("Pod", "prod"), ("Pod", "staging")]
        assert sorted(o.name for o in index) == ["api-1", "web-1"]

    async def test_unaddressable_items_are_dropped(self) -> None:
        collector = _FakeCollector({"Pod": [{"metadata": {"namespace": "prod"}}]}, catalog=(_POD,))
        index = await collector.collect()
        assert len(index) == 0


# ---------------------------------------------------------------------------
# SnapshotCollector._fetch
# ---------------------------------------------------------------------------


class _FakeApiClient:
    def sanitize_for_serialization(self, response: Any) -> Any:
        return response


class _FakeCoreV1Api:
    def __init__(self, api_client: Any) -> None:
        self.api_client = api_client

    async def list_pod_for_all_namespaces(self, _request_timeout: int) -> dict[str, Any]:
        return {"items": [_item("web-1"), "junk"]}

    async def list_namespaced_pod(self, namespace: str, _request_timeout: int) -> dict[str, Any]:
        return {"items": [_item("web-1", namespace=namespace)]}


class _FakeCustomObjectsApi:
    calls: list[tuple[Any, ...]] = []

    def __init__(self, api_client: Any) -> None:
        self.api_client = api_client

    async def list_cluster_custom_object(self, group: str, version: str, plural: str,
                                         _request_timeout: int) -> dict[str, Any]:
        self.calls.append((group, version, plural))
        return {"items": [_item("apps", namespace="flux-system")]}

    async def list_namespaced_custom_object(self, group: str, version: str, namespace: str, plural: str,
                                            _request_timeout: int) -> dict[str, Any]:
        self.calls.append((group, version, namespace, plural))
        return {"items": []}


class TestFetch:
    @pytest.fixture(autouse=True)
    def _fake_apis(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(kubernetes_asyncio.client, "CoreV1Api", _FakeCoreV1Api)
        monkeypatch.setattr(kubernetes_asyncio.client, "CustomObjectsApi", _FakeCustomObjectsApi)
        _FakeCustomObjectsApi.calls = []

    async def test_typed_api_all_namespaces(self) -> None:
        items = await SnapshotCollector()._fetch(_FakeApiClient(), _POD, None)
        assert items == [_item("web-1")]

    async def test_typed_api_one_namespace(self) -> None:
        items = await SnapshotCollector()._fetch(_FakeApiClient(), _POD, "staging")
        assert items[0]["metadata"]["namespace"] == "staging"

    async def test_custom_objects(self) -> None:
        collector = SnapshotCollector()
        items = await collector._fetch(_FakeApiClient(), _KUSTOMIZATION, None)
        await collector._fetch(_FakeApiClient(), _KUSTOMIZATION, "prod")

        assert items[0]["metadata"]["name"] == "apps"
        assert _FakeCustomObjectsApi.calls == [
            ("kustomize.toolkit.fluxcd.io", "v1", "kustomizations"),
            ("kustomize.toolkit.fluxcd.io", "v1", "prod", "kustomizations"),
        ]
