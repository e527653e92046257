"""Kinds listed by the live collector and how to reach each one.

Built-in kinds go through the typed kubernetes-asyncio API classes; CRDs go
through ``CustomObjectsApi``.  A CRD that is not installed simply fails to
list and is left out of the snapshot's collected kinds.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class KindSpec:
    """One listable kind.

    ``api`` names the typed API class (``CoreV1Api`` ...) and ``resource``
    the snake_case suffix of its list methods.  When ``api`` is empty the
    kind is a custom resource listed by ``plural``.
    """

    kind: str
    api_version: str
    plural: str
    api: str = ""
    resource: str = ""

    @property
    def group(self) -> str:
        return self.api_version.rpartition("/")[0]

    @property
    def version(self) -> str:
        return self.api_version.rpartition("/")[2]

    @property
    def custom(self) -> bool:
        return not self.api


BUILTIN_KINDS: tuple[KindSpec, ...] = (
    KindSpec("Pod", "v1", "pods", "CoreV1Api", "pod"),
    KindSpec("Service", "v1", "services", "CoreV1Api", "service"),
    KindSpec("ConfigMap", "v1", "configmaps", "CoreV1Api", "config_map"),
    KindSpec("Secret", "v1", "secrets", "CoreV1Api", "secret"),
    KindSpec("PersistentVolumeClaim", "v1", "persistentvolumeclaims", "CoreV1Api", "persistent_volume_claim"),
    KindSpec("ReplicationController", "v1", "replicationcontrollers", "CoreV1Api", "replication_controller"),
    KindSpec("Deployment", "apps/v1", "deployments", "AppsV1Api", "deployment"),
    KindSpec("ReplicaSet", "apps/v1", "replicasets", "AppsV1Api", "replica_set"),
    KindSpec("StatefulSet", "apps/v1", "statefulsets", "AppsV1Api", "stateful_set"),
    KindSpec("DaemonSet", "apps/v1", "daemonsets", "AppsV1Api", "daemon_set"),
    KindSpec("Job", "batch/v1", "jobs", "BatchV1Api", "job"),
    KindSpec("CronJob", "batch/v1", "cronjobs", "BatchV1Api", "cron_job"),
    KindSpec("Ingress", "networking.k8s.io/v1", "ingresses", "NetworkingV1Api", "ingress"),
    KindSpec("NetworkPolicy", "networking.k8s.io/v1", "networkpolicies", "NetworkingV1Api", "network_policy"),
    KindSpec("PodDisruptionBudget", "policy/v1", "poddisruptionbudgets", "PolicyV1Api", "pod_disruption_budget"),
    KindSpec(
        "HorizontalPodAutoscaler",
        "autoscaling/v2",
        "horizontalpodautoscalers",
        "AutoscalingV2Api",
        "horizontal_pod_autoscaler",
    ),
)

CUSTOM_KINDS: tuple[KindSpec, ...] = (
    KindSpec("Kustomization", "kustomize.toolkit.fluxcd.io/v1", "kustomizations"),
    KindSpec("HelmRelease", "helm.toolkit.fluxcd.io/v2", "helmreleases"),
    KindSpec("GitRepository", "source.toolkit.fluxcd.io/v1", "gitrepositories"),
    KindSpec("OCIRepository", "source.toolkit.fluxcd.io/v1beta2", "ocirepositories"),
    KindSpec("HelmRepository", "source.toolkit.fluxcd.io/v1", "helmrepositories"),
    KindSpec("HelmChart", "source.toolkit.fluxcd.io/v1", "helmcharts"),
    KindSpec("Bucket", "source.toolkit.fluxcd.io/v1", "buckets"),
    KindSpec("ExternalArtifact", "source.toolkit.fluxcd.io/v1", "externalartifacts"),
    KindSpec("Application", "argoproj.io/v1alpha1", "applications"),
    KindSpec("VerticalPodAutoscaler", "autoscaling.k8s.io/v1", "verticalpodautoscalers"),
    KindSpec("HTTPRoute", "gateway.networking.k8s.io/v1", "httproutes"),
    KindSpec("Route", "route.openshift.io/v1", "routes"),
)

DEFAULT_CATALOG: tuple[KindSpec, ...] = BUILTIN_KINDS + CUSTOM_KINDS
