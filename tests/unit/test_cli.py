"""Tests for the cub-scout command line, driven from snapshot files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner, Result

from cubscout import __version__
from cubscout.cli import cli
from cubscout.models.config import CubScoutConfig

# ---------------------------------------------------------------------------
# Helper factories
# ---------------------------------------------------------------------------

_FLUX_LABELS = {
    "kustomize.toolkit.fluxcd.io/name": "apps",
    "kustomize.toolkit.fluxcd.io/namespace": "flux-system",
}


def _raw(kind: str, name: str, namespace: str = "prod", **fields: Any) -> dict[str, Any]:
    metadata: dict[str, Any] = {"name": name, "namespace": namespace}
    if "labels" in fields:
        metadata["labels"] = fields.pop("labels")
    return {"apiVersion": "v1", "kind": kind, "metadata": metadata, **fields}


def _snapshot_document(kustomization_ready: bool = True) -> dict[str, Any]:
    ready = {"type": "Ready", "status": "True", "message": "Applied revision: main@sha1:0a1b2c3d"}
    broken = {
        "type": "Ready",
        "status": "False",
        "reason": "BuildFailed",
        "message": "kustomization path not found: ./apps/prod",
    }
    return {
        "version": "1",
        "cluster": "dev",
        "generatedAt": "2026-05-01T08:00:00Z",
        "collectedKinds": ["Pod", "Service", "Secret", "HorizontalPodAutoscaler"],
        "objects": [
            _raw(
                "Deployment",
                "web",
                labels=_FLUX_LABELS,
                spec={"replicas": 1},
                status={"replicas": 1, "readyReplicas": 1, "availableReplicas": 1},
            ),
            _raw(
                "Kustomization",
                "apps",
                namespace="flux-system",
                spec={"path": "./apps/prod", "sourceRef": {"kind": "GitRepository", "name": "fleet"}},
                status={"conditions": [ready if kustomization_ready else broken]},
            ),
            _raw(
                "GitRepository",
                "fleet",
                namespace="flux-system",
                spec={"url": "https://github.com/acme/fleet.git", "ref": {"branch": "main"}},
                status={"conditions": [ready], "artifact": {"revision": "main@sha1:0a1b2c3d"}},
            ),
            _raw("Service", "web", spec={"selector": {"app": "web"}}),
            _raw("Pod", "web-1", labels={"app": "web"}, status={"phase": "Running"}),
            _raw(
                "Pod",
                "worker-1",
                labels={"app": "worker"},
                spec={"volumes": [{"name": "creds", "secret": {"secretName": "worker-creds"}}]},
                status={"phase": "Pending"},
            ),
            _raw("HorizontalPodAutoscaler", "web", spec={"minReplicas": 2, "maxReplicas": 2}),
        ],
    }


@pytest.fixture
def snapshot_file(tmp_path: Path) -> Path:
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(_snapshot_document()))
    return path


def _invoke(snapshot: Path, *args: str) -> Result:
    return CliRunner().invoke(cli, ["--snapshot", str(snapshot), *args])


# ---------------------------------------------------------------------------
# Group options
# ---------------------------------------------------------------------------


class TestGroup:
    def test_version(self) -> None:
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self) -> None:
        result = CliRunner().invoke(cli, ["--help"])
        for command in ("map", "trace", "scan", "snapshot", "serve"):
            assert command in result.output

    def test_unreadable_snapshot(self, tmp_path: Path) -> None:
        result = _invoke(tmp_path / "absent.json", "map")
        assert result.exit_code == 1
        assert "Invalid input: invalid snapshot" in result.output


# ---------------------------------------------------------------------------
# map
# ---------------------------------------------------------------------------


class TestMap:
    def test_json(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "map", "--json")
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["summary"]["total"] == 7
        assert payload["summary"]["by_owner"]["flux"] == 1

    def test_filters(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "map", "--json", "--kind", "Pod", "--problems")
        payload = json.loads(result.stdout)
        assert [e["resource"]["name"] for e in payload["entries"]] == ["worker-1"]
        assert payload["entries"][0]["status"] == "Pending"

    def test_owner_and_namespace(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "map", "--json", "--owner", "flux", "-n", "prod")
        payload = json.loads(result.stdout)
        assert [e["resource"]["kind"] for e in payload["entries"]] == ["Deployment"]

    def test_table(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "map")
        assert result.exit_code == 0
        assert "7 objects" in result.stdout
        assert "1 not ready" in result.stdout


# ---------------------------------------------------------------------------
# trace
# ---------------------------------------------------------------------------


class TestTrace:
    def test_json(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "trace", "Deployment/web", "-n", "prod", "--json")
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["terminus"] == "source"
        assert [link["kind"] for link in payload["links"]] == ["GitRepository", "Kustomization", "Deployment"]

    def test_lowercase_kind_and_bare_name(self, snapshot_file: Path) -> None:
        lower = _invoke(snapshot_file, "trace", "deployment/web", "-n", "prod", "--json")
        bare = _invoke(snapshot_file, "trace", "web", "-n", "prod", "--json")
        assert json.loads(lower.stdout)["target"]["kind"] == "Deployment"
        assert json.loads(bare.stdout)["target"]["name"] == "web"

    def test_in_sync_text(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "trace", "Deployment/web", "-n", "prod")
        assert "TRACE: Deployment/web in prod" in result.stdout
        assert "All levels in sync." in result.stdout
        assert "https://github.com/acme/fleet.git" in result.stdout

    def test_broken_chain_text(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text(json.dumps(_snapshot_document(kustomization_ready=False)))
        result = _invoke(path, "trace", "Deployment/web", "-n", "prod")
        assert "Chain broken at Kustomization/apps" in result.stdout
        assert "kustomization path not found: ./apps/prod" in result.stdout

    def test_unmanaged_text(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "trace", "Service/web", "-n", "prod")
        assert "NOT managed by GitOps" in result.stdout

    def test_max_hops(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "trace", "Deployment/web", "-n", "prod", "--max-hops", "1", "--json")
        assert json.loads(result.stdout)["terminus"] == "hop_limit"

    def test_missing_target(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "trace", "Deployment/absent", "-n", "prod")
        assert result.exit_code == 1
        assert "Deployment/absent not found in namespace prod" in result.output

    def test_malformed_target(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "trace", "apps/Deployment/web")
        assert result.exit_code == 2

    def test_history_without_records(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "trace", "Deployment/web", "-n", "prod", "--history")
        assert result.exit_code == 0, result.output
        assert "No history available" in result.stdout

    def test_drift_text(self, tmp_path: Path) -> None:
        document = _snapshot_document()
        declared = {"kind": "ConfigMap", "data": {"LOG_LEVEL": "info"}}
        document["objects"].append(
            {
                "apiVersion": "v1",
                "kind": "ConfigMap",
                "metadata": {
                    "name": "settings",
                    "namespace": "prod",
                    "annotations": {"kubectl.kubernetes.io/last-applied-configuration": json.dumps(declared)},
                },
                "data": {"LOG_LEVEL": "debug"},
            }
        )
        path = tmp_path / "drifted.json"
        path.write_text(json.dumps(document))

        text = _invoke(path, "trace", "ConfigMap/settings", "-n", "prod")
        assert "Drifted from last-applied configuration (1 field(s))" in text.stdout
        assert "data.LOG_LEVEL" in text.stdout

        payload = json.loads(_invoke(path, "trace", "ConfigMap/settings", "-n", "prod", "--json").stdout)
        assert payload["drifted"] is True
        assert payload["drift"] == [{"path": "data.LOG_LEVEL", "declared": "info", "live": "debug"}]


# ---------------------------------------------------------------------------
# scan
# ---------------------------------------------------------------------------


class TestScan:
    def test_json(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "scan", "--json")
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert [f["rule_id"] for f in payload["findings"]] == ["S12_pod_secret", "S06_hpa_bounds"]
        assert payload["total"] == 2

    def test_fail_on(self, snapshot_file: Path) -> None:
        assert _invoke(snapshot_file, "scan", "--fail-on", "critical").exit_code == 1
        assert _invoke(snapshot_file, "scan", "--check", "S06_hpa_bounds", "--fail-on", "high").exit_code == 0

    def test_severity_filter(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "scan", "--severity", "critical", "--json")
        assert [f["rule_id"] for f in json.loads(result.stdout)["findings"]] == ["S12_pod_secret"]

    def test_fail_on_judges_findings_hidden_by_severity(self, snapshot_file: Path) -> None:
        result = _invoke(
            snapshot_file,
            "scan",
            "--check",
            "S06_hpa_bounds",
            "--severity",
            "critical",
            "--fail-on",
            "warning",
            "--json",
        )
        assert result.exit_code == 1
        assert json.loads(result.stdout)["findings"] == []

    def test_text_lists_verification_commands(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "scan")
        assert "Verify:" in result.stdout
        assert "kubectl get secret worker-creds -n prod" in result.stdout

    def test_clean_snapshot(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "scan", "--check", "S01_service_selector")
        assert "No structural issues found." in result.stdout

    def test_unknown_check(self, snapshot_file: Path) -> None:
        result = _invoke(snapshot_file, "scan", "--check", "S99_nope")
        assert result.exit_code == 2
        assert "S99_nope" in result.output

    def test_disabled_by_environment(self, snapshot_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CUBSCOUT_SCANNER_DISABLED_CHECKS", "S12_pod_secret")
        result = _invoke(snapshot_file, "scan", "--json")
        assert [f["rule_id"] for f in json.loads(result.stdout)["findings"]] == ["S06_hpa_bounds"]


# ---------------------------------------------------------------------------
# snapshot
# ---------------------------------------------------------------------------


class TestSnapshotCommand:
    def test_rewrites_snapshot(self, snapshot_file: Path, tmp_path: Path) -> None:
        out = tmp_path / "copy.json"
        result = _invoke(snapshot_file, "snapshot", "-o", str(out))

        assert result.exit_code == 0, result.output
        assert f"Wrote 7 objects (7 kinds) to {out}" in result.stdout
        document = json.loads(out.read_text())
        assert document["cluster"] == "dev"
        assert len(document["objects"]) == 7


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


class TestServe:
    @pytest.fixture
    def served(self, monkeypatch: pytest.MonkeyPatch) -> list[CubScoutConfig | None]:
        configs: list[CubScoutConfig | None] = []

        async def fake_main(config: CubScoutConfig | None = None) -> None:
            configs.append(config)

        monkeypatch.setattr("cubscout.app.main", fake_main)
        return configs

    def test_group_options_reach_the_service(
        self, snapshot_file: Path, served: list[CubScoutConfig | None]
    ) -> None:
        result = CliRunner().invoke(cli, ["--snapshot", str(snapshot_file), "--cluster", "edge", "serve"])

        assert result.exit_code == 0, result.output
        assert len(served) == 1
        assert served[0] is not None
        assert served[0].snapshot_path == str(snapshot_file)
        assert served[0].cluster == "edge"

    def test_environment_used_without_group_options(
        self, served: list[CubScoutConfig | None], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CUBSCOUT_CLUSTER", "from-env")
        monkeypatch.delenv("CUBSCOUT_SNAPSHOT", raising=False)
        result = CliRunner().invoke(cli, ["serve"])

        assert result.exit_code == 0, result.output
        assert served[0] is not None
        assert served[0].cluster == "from-env"
        assert served[0].snapshot_path == ""
