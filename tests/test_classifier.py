#!/usr/bin/env python3
"""
Status classifier: per-domain verdict rules
"""

import pytest

from cluster_validator.classifier import (
    classify,
    classify_deployment,
    classify_helm_release,
    classify_kustomization,
    classify_namespace,
    classify_node,
    classify_pod,
)
from cluster_validator.models import (
    DeploymentRecord,
    HealthStatus,
    HelmReleaseRecord,
    IngressRecord,
    KustomizationRecord,
    NamespaceRecord,
    NodeRecord,
    PodRecord,
)


def test_namespace_active_and_terminating():
    assert classify_namespace(NamespaceRecord("prod", "Active")).status is HealthStatus.HEALTHY

    verdict = classify_namespace(NamespaceRecord("old", "Terminating"))
    assert verdict.status is HealthStatus.DEGRADED
    assert verdict.reason == "Terminating"


def test_namespace_unknown_phase_is_degraded():
    verdict = classify_namespace(NamespaceRecord("x", "Weird"))
    assert verdict.status is HealthStatus.DEGRADED
    assert verdict.reason == "Weird"


@pytest.mark.parametrize("status,expected", [
    ("deployed", HealthStatus.HEALTHY),
    ("failed", HealthStatus.FAILED),
    ("pending-upgrade", HealthStatus.FAILED),
    ("pending-install", HealthStatus.FAILED),
    ("pending-rollback", HealthStatus.DEGRADED),
    ("superseded", HealthStatus.DEGRADED),
    ("something-new", HealthStatus.DEGRADED),
    ("", HealthStatus.DEGRADED),
])
def test_helm_release_statuses(status, expected):
    verdict = classify_helm_release(HelmReleaseRecord("prod", "api", status))
    assert verdict.status is expected


def test_deployment_ready():
    record = DeploymentRecord("prod", "api", ready_replicas=2, desired_replicas=2, available_replicas=2)
    assert classify_deployment(record).healthy


def test_deployment_partially_ready_mentions_counts():
    record = DeploymentRecord("prod", "web", ready_replicas=1, desired_replicas=2, available_replicas=1)
    verdict = classify_deployment(record)
    assert verdict.status is HealthStatus.DEGRADED
    assert "1/2" in verdict.reason


def test_deployment_scaled_to_zero_is_not_healthy():
    record = DeploymentRecord("prod", "idle", ready_replicas=0, desired_replicas=0, available_replicas=0)
    assert classify_deployment(record).status is HealthStatus.DEGRADED


def test_deployment_ready_but_not_available():
    record = DeploymentRecord("prod", "api", ready_replicas=2, desired_replicas=2, available_replicas=1)
    assert classify_deployment(record).status is HealthStatus.DEGRADED


def test_pod_running_all_ready():
    record = PodRecord("prod", "api-1", "Running", ready_containers=2, total_containers=2)
    assert classify_pod(record).healthy


def test_pod_running_not_all_ready():
    record = PodRecord("prod", "api-1", "Running", ready_containers=1, total_containers=2)
    verdict = classify_pod(record)
    assert verdict.status is HealthStatus.DEGRADED
    assert verdict.reason == "Not all containers ready (1/2)"


def test_pod_running_without_containers_is_degraded():
    record = PodRecord("prod", "api-1", "Running", ready_containers=0, total_containers=0)
    assert classify_pod(record).status is HealthStatus.DEGRADED


def test_pod_completed_is_healthy_regardless_of_readiness():
    record = PodRecord("batch", "job-1", "Completed", ready_containers=0, total_containers=1)
    assert classify_pod(record).healthy


def test_pod_pending():
    verdict = classify_pod(PodRecord("prod", "p", "Pending"))
    assert verdict.status is HealthStatus.DEGRADED
    assert verdict.reason == "Pending"


@pytest.mark.parametrize("phase", ["Failed", "CrashLoopBackOff", "ImagePullBackOff", "ErrImagePull"])
def test_pod_failure_phases_report_restarts(phase):
    verdict = classify_pod(PodRecord("prod", "p", phase, restart_count=7))
    assert verdict.status is HealthStatus.FAILED
    assert verdict.reason == f"{phase} (Restarts: 7)"


def test_pod_init_states_fail():
    verdict = classify_pod(PodRecord("prod", "p", "Init:CrashLoopBackOff"))
    assert verdict.status is HealthStatus.FAILED
    assert verdict.reason == "Init:CrashLoopBackOff (Init containers not ready)"

    assert classify_pod(PodRecord("prod", "p", "Init:0/2")).status is HealthStatus.FAILED


@pytest.mark.parametrize("phase", ["Error", "ContainerStatusUnknownError", "Evicted"])
def test_pod_error_and_evicted_fail(phase):
    verdict = classify_pod(PodRecord("prod", "p", phase))
    assert verdict.status is HealthStatus.FAILED
    assert verdict.reason == phase


@pytest.mark.parametrize("phase", ["ContainerCreating", "Terminating", "Unknown", "", "NewState"])
def test_pod_transitional_states_are_degraded(phase):
    assert classify_pod(PodRecord("prod", "p", phase)).status is HealthStatus.DEGRADED


def test_kustomization_binary_verdict():
    assert classify_kustomization(KustomizationRecord("flux-system", "apps", "True")).healthy

    verdict = classify_kustomization(KustomizationRecord("flux-system", "apps", "False", "build failed"))
    assert verdict.status is HealthStatus.FAILED
    assert verdict.reason == "False (build failed)"

    for ready in (None, "", "Unknown", "true"):
        assert classify_kustomization(KustomizationRecord("flux-system", "k", ready)).status \
            is HealthStatus.FAILED


def test_node_unready_is_always_failed():
    assert classify_node(NodeRecord("n1", "Ready")).healthy
    for condition in ("NotReady", "Unknown", "Ready,SchedulingDisabled", ""):
        assert classify_node(NodeRecord("n1", condition)).status is HealthStatus.FAILED


def test_classify_dispatch_and_idempotence():
    records = [
        NamespaceRecord("prod", "Active"),
        HelmReleaseRecord("prod", "api", "failed"),
        DeploymentRecord("prod", "api", 1, 2, 1, 1),
        PodRecord("prod", "p", "Running", 1, 1),
        KustomizationRecord("flux-system", "apps", "False"),
        NodeRecord("n1", "NotReady"),
    ]
    for record in records:
        assert classify(record) == classify(record)


def test_classify_rejects_unknown_record_type():
    with pytest.raises(TypeError):
        classify(IngressRecord("prod", "web"))
