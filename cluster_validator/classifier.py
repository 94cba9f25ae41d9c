"""
Status classifier - raw resource fields to a health verdict

Pure functions, one per domain. Every function is total: unrecognized
status strings map to a defined verdict instead of raising.

Policy summary:
- namespace: Active -> HEALTHY, anything else -> DEGRADED
- helm release: deployed -> HEALTHY, failed/pending-* -> FAILED, else DEGRADED
- deployment: all replicas ready and available, desired != 0 -> HEALTHY
- pod: Running (all containers ready) / Completed -> HEALTHY,
  crash/pull/init/error states -> FAILED, everything else -> DEGRADED
- kustomization: Ready == "True" -> HEALTHY, else FAILED
- node: Ready -> HEALTHY, else FAILED
"""

from typing import Callable, Dict, Union

from .models import (
    DeploymentRecord,
    HealthStatus,
    HealthVerdict,
    HelmReleaseRecord,
    HelmStatus,
    KustomizationRecord,
    NamespacePhase,
    NamespaceRecord,
    NodeRecord,
    PodPhase,
    PodRecord,
    POD_FAILURE_PHASES,
)

ResourceRecord = Union[
    NamespaceRecord,
    HelmReleaseRecord,
    DeploymentRecord,
    PodRecord,
    KustomizationRecord,
    NodeRecord,
]

HEALTHY = HealthVerdict(HealthStatus.HEALTHY)

HELM_FAILED_STATUSES = (
    HelmStatus.FAILED,
    HelmStatus.PENDING_UPGRADE,
    HelmStatus.PENDING_INSTALL,
)


def classify_namespace(record: NamespaceRecord) -> HealthVerdict:
    if NamespacePhase.parse(record.phase) is NamespacePhase.ACTIVE:
        return HEALTHY
    return HealthVerdict(HealthStatus.DEGRADED, record.phase or "Unknown")


def classify_helm_release(record: HelmReleaseRecord) -> HealthVerdict:
    status = HelmStatus.parse(record.status)
    if status is HelmStatus.DEPLOYED:
        return HEALTHY
    if status in HELM_FAILED_STATUSES:
        return HealthVerdict(HealthStatus.FAILED, record.status)
    return HealthVerdict(HealthStatus.DEGRADED, record.status or "unknown")


def classify_deployment(record: DeploymentRecord) -> HealthVerdict:
    """Deployment readiness

    Zero desired replicas is not healthy: a scaled-to-zero deployment in a
    delivered cluster is treated as misconfiguration.
    """
    desired = record.desired_replicas
    if (
        desired != 0
        and record.ready_replicas == desired
        and record.available_replicas == desired
    ):
        return HEALTHY
    return HealthVerdict(
        HealthStatus.DEGRADED,
        f"Not Ready ({record.ready_replicas}/{desired}/{record.available_replicas})",
    )


def classify_pod(record: PodRecord) -> HealthVerdict:
    """Pod verdict from the kubectl display status

    Namespace gating happens in the collector; this function only looks at
    the record itself.
    """
    phase = PodPhase.parse(record.phase)

    if phase is PodPhase.RUNNING:
        total = record.total_containers
        if total and record.ready_containers == total:
            return HEALTHY
        return HealthVerdict(
            HealthStatus.DEGRADED,
            f"Not all containers ready ({record.ready_containers}/{total})",
        )

    if phase is PodPhase.COMPLETED:
        # finished job
        return HEALTHY

    if phase is PodPhase.PENDING:
        return HealthVerdict(HealthStatus.DEGRADED, "Pending")

    if phase in POD_FAILURE_PHASES:
        return HealthVerdict(
            HealthStatus.FAILED,
            f"{record.phase} (Restarts: {record.restart_count})",
        )

    if phase is PodPhase.INIT:
        return HealthVerdict(
            HealthStatus.FAILED,
            f"{record.phase} (Init containers not ready)",
        )

    if phase is PodPhase.ERROR:
        return HealthVerdict(HealthStatus.FAILED, record.phase)

    # ContainerCreating, Terminating, ... are transitional
    return HealthVerdict(HealthStatus.DEGRADED, record.phase or "Unknown")


def classify_kustomization(record: KustomizationRecord) -> HealthVerdict:
    if record.ready == "True":
        return HEALTHY
    ready = record.ready or "Unknown"
    if record.message:
        return HealthVerdict(HealthStatus.FAILED, f"{ready} ({record.message})")
    return HealthVerdict(HealthStatus.FAILED, ready)


def classify_node(record: NodeRecord) -> HealthVerdict:
    if record.condition == "Ready":
        return HEALTHY
    return HealthVerdict(HealthStatus.FAILED, record.condition or "Unknown")


_CLASSIFIERS: Dict[type, Callable] = {
    NamespaceRecord: classify_namespace,
    HelmReleaseRecord: classify_helm_release,
    DeploymentRecord: classify_deployment,
    PodRecord: classify_pod,
    KustomizationRecord: classify_kustomization,
    NodeRecord: classify_node,
}


def classify(record: ResourceRecord) -> HealthVerdict:
    """Classify any resource record

    Raises:
        TypeError: record is not a classifiable resource record
    """
    try:
        classifier = _CLASSIFIERS[type(record)]
    except KeyError:
        raise TypeError(f"No classifier for {type(record).__name__}") from None
    return classifier(record)
