#!/usr/bin/env python3
"""
kubectl source: command lines, caching, failure mapping
"""

import asyncio
import json
import os
import subprocess
import time

import pytest

from cluster_validator.collectors import KubectlSource
from cluster_validator.config import ValidatorConfig
from cluster_validator.endpoints import EndpointProbe
from cluster_validator.utils.errors import CollectionError, ErrorCode, RunTimeoutError
from cluster_validator.validator import ClusterValidator


class ScriptedKubectl:
    """Replaces KubectlSource._exec; answers by the first matching command fragment"""

    def __init__(self, answers):
        self.answers = answers
        self.commands = []

    async def __call__(self, cmd, timeout):
        self.commands.append(cmd)
        line = " ".join(cmd)
        for fragment, answer in self.answers.items():
            if fragment in line:
                if isinstance(answer, BaseException):
                    raise answer
                returncode, stdout, stderr = answer
                return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)
        return subprocess.CompletedProcess(cmd, 1, "", f"unexpected command: {line}")


def ok(data):
    return 0, json.dumps(data), ""


def fail(stderr):
    return 1, "", stderr


def _source(answers, **kwargs):
    source = KubectlSource(**kwargs)
    source._exec = ScriptedKubectl(answers)
    return source


NAMESPACES = {"items": [
    {"metadata": {"name": "prod"}, "status": {"phase": "Active"}},
    {"metadata": {"name": "old"}, "status": {"phase": "Terminating"}},
]}


def test_command_prefix_includes_context_and_kubeconfig():
    source = KubectlSource(context="prod-eu", kubeconfig="/tmp/kc")
    assert source.kubectl_cmd == ["kubectl", "--kubeconfig", "/tmp/kc", "--context", "prod-eu"]
    assert source.helm_cmd == ["helm", "--kubeconfig", "/tmp/kc", "--kube-context", "prod-eu"]


def test_list_namespaces_and_cache():
    source = _source({"get namespaces": ok(NAMESPACES)})

    first = asyncio.run(source.list_namespaces())
    second = asyncio.run(source.list_namespaces())

    assert [(n.name, n.phase) for n in first] == [("prod", "Active"), ("old", "Terminating")]
    assert first == second
    assert len(source._exec.commands) == 1


def test_cache_disabled():
    source = _source({"get namespaces": ok(NAMESPACES)}, enable_cache=False)
    asyncio.run(source.list_namespaces())
    asyncio.run(source.list_namespaces())

    assert len(source._exec.commands) == 2
    assert source.cache is None


def test_scope_flags():
    source = _source({"get pods": ok({"items": []})})
    asyncio.run(source.list_pods())
    asyncio.run(source.list_pods("prod"))

    assert source._exec.commands[0][-4:] == ["pods", "-A", "-o", "json"]
    assert source._exec.commands[1][-5:] == ["pods", "-n", "prod", "-o", "json"]


def test_namespace_scopes_kustomizations_and_ingresses():
    source = _source({"kustomizations": ok({"items": []}), "get ingress": ok({"items": []})})
    asyncio.run(source.list_kustomizations("prod"))
    asyncio.run(source.list_ingresses("prod"))
    asyncio.run(source.list_ingresses())

    kustomizations, scoped, unscoped = source._exec.commands
    assert kustomizations[-4:] == ["-n", "prod", "-o", "json"]
    assert scoped[-5:] == ["ingress", "-n", "prod", "-o", "json"]
    assert unscoped[-4:] == ["ingress", "-A", "-o", "json"]


def test_forbidden_listing_raises_collection_error():
    source = _source({"get deployments": fail('deployments.apps is forbidden: User "x" cannot list')})

    with pytest.raises(CollectionError) as exc_info:
        asyncio.run(source.list_deployments())

    assert exc_info.value.code is ErrorCode.PERMISSION_DENIED
    assert exc_info.value.domain == "deployment"
    assert "kubectl get deployments" in exc_info.value.details["cmd"]


def test_failures_are_not_cached():
    source = _source({"get nodes": fail("connection refused")})
    for _ in range(2):
        with pytest.raises(CollectionError):
            asyncio.run(source.list_nodes())
    assert len(source._exec.commands) == 2


def test_command_timeout():
    source = _source({"get pods": asyncio.TimeoutError()})
    with pytest.raises(CollectionError) as exc_info:
        asyncio.run(source.list_pods())
    assert exc_info.value.code is ErrorCode.TIMEOUT


def test_missing_binary():
    source = _source({"helm": FileNotFoundError(2, "No such file or directory", "helm")})
    with pytest.raises(CollectionError):
        asyncio.run(source.list_helm_releases())


def test_non_json_output():
    source = _source({"get ingress": (0, "No resources found", "")})
    with pytest.raises(CollectionError):
        asyncio.run(source.list_ingresses())


def test_kustomization_crd_missing_means_empty():
    source = _source({
        "kustomizations": fail(
            'error: the server doesn\'t have a resource type "kustomizations"'
        ),
    })
    assert asyncio.run(source.list_kustomizations()) == []


def test_helm_releases_parsed():
    releases = [
        {"name": "api", "namespace": "prod", "status": "deployed"},
        {"name": "broken", "namespace": "prod", "status": "failed"},
    ]
    source = _source({"helm list": ok(releases)})
    records = asyncio.run(source.list_helm_releases("prod"))

    assert [(r.name, r.status) for r in records] == [("api", "deployed"), ("broken", "failed")]
    assert source._exec.commands[0][-4:] == ["-n", "prod", "--output", "json"]


def test_cluster_identity():
    source = _source({
        "config current-context": (0, "prod-eu\n", ""),
        "version -o json": ok({"serverVersion": {"gitVersion": "v1.29.2"}}),
    })
    identity = asyncio.run(source.get_cluster_identity())
    assert (identity.name, identity.version) == ("prod-eu", "1.29.2")


def test_cluster_identity_falls_back_to_kubelet_version():
    nodes = {"items": [{
        "metadata": {"name": "n1"},
        "status": {"conditions": [{"type": "Ready", "status": "True"}],
                   "nodeInfo": {"kubeletVersion": "v1.28.4"}},
    }]}
    source = _source({"version -o json": fail("error"), "get nodes": ok(nodes)}, context="staging")
    identity = asyncio.run(source.get_cluster_identity())
    assert (identity.name, identity.version) == ("staging", "1.28.4")


def test_mesh_not_installed():
    source = _source({
        "get namespace istio-system": fail('Error from server (NotFound): namespaces "istio-system" not found'),
    })
    assert asyncio.run(source.get_mesh_version()) == "Not installed"


def test_mesh_version_from_pilot_discovery():
    istiod = {"items": [{
        "metadata": {"name": "istiod-abc"},
        "status": {"phase": "Running"},
        "spec": {"containers": [{"image": "docker.io/istio/pilot:1.19.0"}]},
    }]}
    source = _source({
        "get namespace istio-system": ok({"metadata": {"name": "istio-system"}}),
        "app=istiod": ok(istiod),
        "pilot-discovery": (0, "1.20.3-distroless\n", ""),
    })
    assert asyncio.run(source.get_mesh_version()) == "1.20.3"


def test_mesh_version_from_image_tag():
    istiod = {"items": [{
        "metadata": {"name": "istiod-abc"},
        "status": {"phase": "Running"},
        "spec": {"containers": [{"image": "docker.io/istio/pilot:1.19.0"}]},
    }]}
    source = _source({
        "get namespace istio-system": ok({"metadata": {"name": "istio-system"}}),
        "app=istiod": ok(istiod),
        "pilot-discovery": fail("exec not allowed"),
    })
    assert asyncio.run(source.get_mesh_version()) == "1.19.0"



# === real subprocesses against stand-in binaries ===

@pytest.fixture
def bin_dir(tmp_path, monkeypatch):
    directory = tmp_path / "bin"
    directory.mkdir()
    monkeypatch.setenv("PATH", f"{directory}{os.pathsep}{os.environ.get('PATH', '')}")
    return directory


def _install(directory, name, body):
    path = directory / name
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(0o755)
    return path


def test_subprocess_output_is_parsed(bin_dir):
    _install(bin_dir, "kubectl", "cat <<'JSON'\n" + json.dumps(NAMESPACES) + "\nJSON\n")
    records = asyncio.run(KubectlSource().list_namespaces())
    assert [n.name for n in records] == ["prod", "old"]


def test_subprocess_stderr_becomes_collection_error(bin_dir):
    _install(bin_dir, "kubectl", "echo 'connection refused' >&2\nexit 1\n")
    with pytest.raises(CollectionError) as exc_info:
        asyncio.run(KubectlSource().list_nodes())
    assert exc_info.value.message == "connection refused"


def test_cancelled_command_is_killed(bin_dir, tmp_path):
    pid_file = tmp_path / "kubectl.pid"
    _install(bin_dir, "kubectl", f"echo $$ > {pid_file}\nexec sleep 30\n")

    started = time.monotonic()
    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(asyncio.wait_for(KubectlSource().list_pods(), timeout=0.5))
    assert time.monotonic() - started < 5

    pid = int(pid_file.read_text().strip())
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)


def test_run_timeout_bounds_live_run(bin_dir):
    for name in ("kubectl", "helm"):
        _install(bin_dir, name, "exec sleep 30\n")

    config = ValidatorConfig(run_timeout=0.5)
    validator = ClusterValidator(config=config, probe=EndpointProbe(timeout=1))

    started = time.monotonic()
    with pytest.raises(RunTimeoutError):
        asyncio.run(validator.run())
    assert time.monotonic() - started < 5
