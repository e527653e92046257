"""S11-S13 Pods referencing missing volumes claims, Secrets and ConfigMaps.

References marked ``optional: true`` are allowed to dangle and are skipped.
Each (pod, missing object) pair is reported once, listing every place the
pod refers to it.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from cubscout.models.findings import Finding, Severity
from cubscout.models.objects import ClusterObject, ResourceRef, nested_bool, nested_list, nested_map, nested_string
from cubscout.scanner.base import Check
from cubscout.snapshot.index import SnapshotIndex

_CONTAINER_FIELDS = ("initContainers", "containers", "ephemeralContainers")


def _containers(pod: ClusterObject) -> Iterator[dict[str, Any]]:
    for container_field in _CONTAINER_FIELDS:
        for container in nested_list(pod.spec, container_field) or []:
            if isinstance(container, dict):
                yield container


def _volumes(pod: ClusterObject) -> Iterator[dict[str, Any]]:
    for volume in nested_list(pod.spec, "volumes") or []:
        if isinstance(volume, dict):
            yield volume


def _required(ref: Any) -> bool:
    return nested_bool(ref, "optional") is not True


def claim_refs(pod: ClusterObject) -> Iterator[tuple[str, str]]:
    """(claim name, where) for every persistentVolumeClaim volume."""
    for volume in _volumes(pod):
        name = nested_string(volume, "persistentVolumeClaim", "claimName")
        if name:
            yield name, f"volume {nested_string(volume, 'name') or name}"


def secret_refs(pod: ClusterObject) -> Iterator[tuple[str, str]]:
    """(secret name, where) for every non-optional Secret reference."""
    for volume in _volumes(pod):
        secret = nested_map(volume, "secret")
        name = nested_string(secret, "secretName")
        if name and _required(secret):
            yield name, f"volume {nested_string(volume, 'name') or name}"
        for source in nested_list(volume, "projected", "sources") or []:
            projected = nested_map(source, "secret")
            name = nested_string(projected, "name")
            if name and _required(projected):
                yield name, f"projected volume {nested_string(volume, 'name') or name}"
    for pull_secret in nested_list(pod.spec, "imagePullSecrets") or []:
        name = nested_string(pull_secret, "name")
        if name:
            yield name, "imagePullSecrets"
    for container in _containers(pod):
        cname = nested_string(container, "name") or "?"
        for env_from in nested_list(container, "envFrom") or []:
            ref = nested_map(env_from, "secretRef")
            name = nested_string(ref, "name")
            if name and _required(ref):
                yield name, f"container {cname} envFrom"
        for env in nested_list(container, "env") or []:
            ref = nested_map(env, "valueFrom", "secretKeyRef")
            name = nested_string(ref, "name")
            if name and _required(ref):
                yield name, f"container {cname} env {nested_string(env, 'name') or ''}".rstrip()


def configmap_refs(pod: ClusterObject) -> Iterator[tuple[str, str]]:
    """(configmap name, where) for every non-optional ConfigMap reference."""
    for volume in _volumes(pod):
        cm = nested_map(volume, "configMap")
        name = nested_string(cm, "name")
        if name and _required(cm):
            yield name, f"volume {nested_string(volume, 'name') or name}"
        for source in nested_list(volume, "projected", "sources") or []:
            projected = nested_map(source, "configMap")
            name = nested_string(projected, "name")
            if name and _required(projected):
                yield name, f"projected volume {nested_string(volume, 'name') or name}"
    for container in _containers(pod):
        cname = nested_string(container, "name") or "?"
        for env_from in nested_list(container, "envFrom") or []:
            ref = nested_map(env_from, "configMapRef")
            name = nested_string(ref, "name")
            if name and _required(ref):
                yield name, f"container {cname} envFrom"
        for env in nested_list(container, "env") or []:
            ref = nested_map(env, "valueFrom", "configMapKeyRef")
            name = nested_string(ref, "name")
            if name and _required(ref):
                yield name, f"container {cname} env {nested_string(env, 'name') or ''}".rstrip()


class _PodReferenceCheck(Check):
    """Shared shape: collect references, report each missing target once per pod."""

    subject_kind = "Pod"
    target_kind = ""
    kubectl_resource = ""

    def references(self, pod: ClusterObject) -> Iterator[tuple[str, str]]:
        raise NotImplementedError

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        missing: dict[str, list[str]] = {}
        for name, where in self.references(obj):
            if index.get(self.target_kind, obj.namespace, name) is not None:
                continue
            places = missing.setdefault(name, [])
            if where not in places:
                places.append(where)
        return [
            self.finding(
                obj,
                message=f"Pod references non-existent {self.target_kind}: {name} (via {', '.join(places)})",
                verification_command=f"kubectl get {self.kubectl_resource} {name} -n {obj.namespace}",
                target=ResourceRef(self.target_kind, obj.namespace, name),
                remediation=f"Create {self.target_kind} {name} or remove the reference from the pod spec",
                details={"references": "; ".join(places)},
            )
            for name, places in missing.items()
        ]


class PodClaimCheck(_PodReferenceCheck):
    check_id = "S11_pod_pvc"
    display_name = "Pod references missing PersistentVolumeClaim"
    severity = Severity.HIGH
    required_kinds = ("Pod", "PersistentVolumeClaim")
    target_kind = "PersistentVolumeClaim"
    kubectl_resource = "pvc"

    def references(self, pod: ClusterObject) -> Iterator[tuple[str, str]]:
        return claim_refs(pod)


class PodSecretCheck(_PodReferenceCheck):
    check_id = "S12_pod_secret"
    display_name = "Pod references missing Secret"
    severity = Severity.CRITICAL
    required_kinds = ("Pod", "Secret")
    target_kind = "Secret"
    kubectl_resource = "secret"

    def references(self, pod: ClusterObject) -> Iterator[tuple[str, str]]:
        return secret_refs(pod)


class PodConfigMapCheck(_PodReferenceCheck):
    check_id = "S13_pod_configmap"
    display_name = "Pod references missing ConfigMap"
    severity = Severity.HIGH
    required_kinds = ("Pod", "ConfigMap")
    target_kind = "ConfigMap"
    kubectl_resource = "configmap"

    def references(self, pod: ClusterObject) -> Iterator[tuple[str, str]]:
        return configmap_refs(pod)
