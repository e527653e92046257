"""Tests for drift detection against the last-applied configuration."""

from __future__ import annotations

import json
from typing import Any

from cubscout.chain import LAST_APPLIED_ANNOTATION, detect_drift, resolve
from cubscout.chain.drift import last_applied
from cubscout.models.chain import FieldDrift
from cubscout.models.objects import ClusterObject
from cubscout.snapshot import SnapshotIndex

# ---------------------------------------------------------------------------
# Helper factories
# ---------------------------------------------------------------------------


def _applied(kind: str, declared: dict[str, Any], **live: Any) -> ClusterObject:
    """Live object whose last-applied record is ``declared``."""
    metadata: dict[str, Any] = {
        "name": "web",
        "namespace": "prod",
        "labels": live.pop("labels", {}),
        "annotations": {LAST_APPLIED_ANNOTATION: json.dumps(declared), **live.pop("annotations", {})},
    }
    obj = ClusterObject.from_dict({"apiVersion": "v1", "kind": kind, "metadata": metadata, **live})
    assert obj is not None
    return obj


def _deployment_doc(replicas: int = 3, image: str = "acme/web:1.4.0") -> dict[str, Any]:
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "web", "namespace": "prod", "labels": {"app": "web"}},
        "spec": {
            "replicas": replicas,
            "template": {"spec": {"containers": [{"name": "web", "image": image}]}},
        },
    }


def _live_spec(replicas: int = 3, image: str = "acme/web:1.4.0") -> dict[str, Any]:
    # server defaults the applier never sent
    return {
        "replicas": replicas,
        "revisionHistoryLimit": 10,
        "strategy": {"type": "RollingUpdate"},
        "template": {
            "spec": {
                "containers": [{"name": "web", "image": image, "imagePullPolicy": "IfNotPresent"}],
                "restartPolicy": "Always",
            }
        },
    }


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestDetectDrift:
    def test_matching_object_has_no_drift(self) -> None:
        obj = _applied("Deployment", _deployment_doc(), labels={"app": "web"}, spec=_live_spec())
        assert detect_drift(obj) == ()

    def test_scaled_and_patched_deployment(self) -> None:
        obj = _applied(
            "Deployment",
            _deployment_doc(),
            labels={"app": "web"},
            spec=_live_spec(replicas=5, image="acme/web:1.4.1-hotfix"),
        )

        assert detect_drift(obj) == (
            FieldDrift("spec.replicas", 3, 5),
            FieldDrift("spec.template.spec.containers[0].image", "acme/web:1.4.0", "acme/web:1.4.1-hotfix"),
        )

    def test_removed_label_and_changed_annotation(self) -> None:
        declared = _deployment_doc()
        declared["metadata"]["annotations"] = {"team": "payments"}
        obj = _applied("Deployment", declared, annotations={"team": "checkout"}, spec=_live_spec())

        assert detect_drift(obj) == (
            FieldDrift("metadata.labels.app", "web", None),
            FieldDrift("metadata.annotations.team", "payments", "checkout"),
        )

    def test_list_length_change_is_one_change(self) -> None:
        declared = _deployment_doc()
        live = _live_spec()
        live["template"]["spec"]["containers"].append({"name": "debug", "image": "busybox"})
        obj = _applied("Deployment", declared, labels={"app": "web"}, spec=live)

        drift = detect_drift(obj)
        assert [d.path for d in drift] == ["spec.template.spec.containers"]
        assert len(drift[0].live) == 2

    def test_boolean_never_equals_number(self) -> None:
        declared = {"kind": "Service", "spec": {"publishNotReadyAddresses": True}}
        obj = _applied("Service", declared, spec={"publishNotReadyAddresses": 1})
        assert [d.path for d in detect_drift(obj)] == ["spec.publishNotReadyAddresses"]

    def test_empty_declared_value_matches_absent_field(self) -> None:
        declared = {"kind": "Deployment", "spec": {"replicas": 1, "selector": {}, "template": {"metadata": None}}}
        obj = _applied("Deployment", declared, spec={"replicas": 1, "template": {}})
        assert detect_drift(obj) == ()

    def test_configmap_data(self) -> None:
        declared = {"kind": "ConfigMap", "data": {"LOG_LEVEL": "info", "REGION": "eu-west-1"}}
        obj = _applied("ConfigMap", declared, data={"LOG_LEVEL": "debug", "REGION": "eu-west-1"})
        assert detect_drift(obj) == (FieldDrift("data.LOG_LEVEL", "info", "debug"),)

    def test_secret_payload_is_not_compared(self) -> None:
        declared = {"kind": "Secret", "data": {"password": "c2VjcmV0"}}
        assert detect_drift(_applied("Secret", declared)) == ()

    def test_without_record_there_is_no_drift(self) -> None:
        obj = ClusterObject.from_dict(
            {"apiVersion": "v1", "kind": "Service", "metadata": {"name": "web"}, "spec": {"type": "ClusterIP"}}
        )
        assert obj is not None
        assert last_applied(obj) is None
        assert detect_drift(obj) == ()

    def test_unreadable_record_is_ignored(self) -> None:
        obj = ClusterObject.from_dict(
            {
                "apiVersion": "v1",
                "kind": "Service",
                "metadata": {"name": "web", "annotations": {LAST_APPLIED_ANNOTATION: "{not json"}},
            }
        )
        assert obj is not None
        assert detect_drift(obj) == ()


class TestChainDrift:
    def test_resolved_chain_carries_target_drift(self) -> None:
        obj = _applied("Deployment", _deployment_doc(replicas=2), labels={"app": "web"}, spec=_live_spec(replicas=4))
        chain = resolve(obj, SnapshotIndex([obj]))

        assert chain.drifted
        assert chain.drift == (FieldDrift("spec.replicas", 2, 4),)

    def test_chain_without_record_is_not_drifted(self) -> None:
        obj = _applied("Deployment", _deployment_doc(), labels={"app": "web"}, spec=_live_spec())
        assert not resolve(obj, SnapshotIndex([obj])).drifted
