"""
Live cluster source - kubectl and helm

Usage strategy:
1. kubectl - standard resources and Flux Kustomizations (JSON output)
2. helm - release listing
3. Commands run as asyncio subprocesses so collectors can overlap; a
   cancelled or timed out command is killed, transient timeouts are
   retried, successful responses are cached.
"""

import asyncio
import json
import logging
import subprocess
from typing import Any, Dict, List, Optional

from ..models import (
    ClusterIdentity,
    DeploymentRecord,
    HelmReleaseRecord,
    IngressRecord,
    ISTIO_NAMESPACE,
    KustomizationRecord,
    NamespaceRecord,
    NodeRecord,
    PodRecord,
)
from ..utils.errors import CollectionError
from ..utils.retry import retry_on_k8s_error
from .cache import ResponseCache
from .parsers import (
    extract_semver,
    parse_deployment,
    parse_helm_release,
    parse_ingress,
    parse_kustomization,
    parse_namespace,
    parse_node,
    parse_pod,
    parse_server_version,
    strip_version_prefix,
)
from .source import ClusterSource

logger = logging.getLogger(__name__)

KUSTOMIZATION_RESOURCE = "kustomizations.kustomize.toolkit.fluxcd.io"


class KubectlSource(ClusterSource):
    """ClusterSource backed by the kubectl and helm binaries"""

    def __init__(
        self,
        context: Optional[str] = None,
        kubeconfig: Optional[str] = None,
        enable_cache: bool = True,
        command_timeout: int = 30,
    ):
        """
        Args:
            context: kubeconfig context (default: current-context)
            kubeconfig: kubeconfig path (default: kubectl rules)
            enable_cache: cache successful responses (default True)
            command_timeout: per-command timeout in seconds
        """
        self.context = context
        self.kubeconfig = kubeconfig
        self.command_timeout = command_timeout
        self.kubectl_cmd = self._build_kubectl_cmd()
        self.helm_cmd = self._build_helm_cmd()
        self.cache = ResponseCache() if enable_cache else None

    def _build_kubectl_cmd(self) -> List[str]:
        cmd = ["kubectl"]
        if self.kubeconfig:
            cmd.extend(["--kubeconfig", self.kubeconfig])
        if self.context:
            cmd.extend(["--context", self.context])
        return cmd

    def _build_helm_cmd(self) -> List[str]:
        cmd = ["helm"]
        if self.kubeconfig:
            cmd.extend(["--kubeconfig", self.kubeconfig])
        if self.context:
            cmd.extend(["--kube-context", self.context])
        return cmd

    @staticmethod
    def _scope(namespace: Optional[str]) -> List[str]:
        return ["-n", namespace] if namespace else ["-A"]

    @retry_on_k8s_error(exceptions=(asyncio.TimeoutError,))
    async def _exec(self, cmd: List[str], timeout: int) -> subprocess.CompletedProcess:
        """Run cmd, killing the process on timeout or cancellation"""
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise
        return subprocess.CompletedProcess(
            cmd,
            proc.returncode,
            stdout.decode(errors="replace"),
            stderr.decode(errors="replace"),
        )

    async def run(self, cmd: List[str], timeout: Optional[int] = None, use_cache: bool = True) -> Dict:
        """
        Run a command and parse its output

        Args:
            cmd: command list
            timeout: timeout in seconds (default: command_timeout)
            use_cache: consult and fill the cache (default True)

        Returns:
            {"success": bool, "data": any, "error": str, "cmd": str}
        """
        timeout = timeout or self.command_timeout
        cache_key = None
        if self.cache is not None and use_cache:
            cache_key = self.cache.key_for(cmd, timeout=timeout)
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        cmd_str = " ".join(cmd)
        logger.debug("running %s", cmd_str)
        try:
            result = await self._exec(cmd, timeout)
        except asyncio.TimeoutError:
            return {"success": False, "error": f"Command timed out after {timeout}s", "cmd": cmd_str}
        except OSError as e:
            # binary missing or not executable
            return {"success": False, "error": str(e), "cmd": cmd_str}

        if result.returncode != 0:
            return {"success": False, "error": result.stderr.strip(), "cmd": cmd_str}

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            data = result.stdout.strip()

        response = {"success": True, "data": data, "cmd": cmd_str}
        if cache_key is not None:
            self.cache.set(cache_key, response)
        return response

    async def _get_json(self, cmd: List[str], domain: str) -> Any:
        result = await self.run(cmd)
        if not result["success"]:
            raise CollectionError(result["error"] or "command failed", domain=domain,
                                  details={"cmd": result["cmd"]})
        data = result["data"]
        if not isinstance(data, (dict, list)):
            raise CollectionError("unexpected non-JSON output", domain=domain,
                                  details={"cmd": result["cmd"]})
        return data

    async def _list_items(
        self, resource: str, domain: str, namespace: Optional[str] = None, namespaced: bool = True
    ) -> List[Dict]:
        cmd = self.kubectl_cmd + ["get", resource]
        if namespaced:
            cmd += self._scope(namespace)
        cmd += ["-o", "json"]
        data = await self._get_json(cmd, domain)
        return data.get("items", []) if isinstance(data, dict) else []

    # === cluster identity ===

    async def get_cluster_identity(self) -> ClusterIdentity:
        name = self.context
        if not name:
            result = await self.run(self.kubectl_cmd + ["config", "current-context"], use_cache=False)
            if result["success"]:
                name = str(result["data"]).strip()

        version = None
        result = await self.run(self.kubectl_cmd + ["version", "-o", "json"])
        if result["success"] and isinstance(result["data"], dict):
            version = parse_server_version(result["data"])

        if not version:
            # fall back to the first node's kubelet
            try:
                nodes = await self.list_nodes()
            except CollectionError:
                nodes = []
            if nodes and nodes[0].kubelet_version:
                version = strip_version_prefix(nodes[0].kubelet_version)

        return ClusterIdentity(name=name or "unknown", version=version or "unknown")

    async def get_mesh_version(self) -> str:
        result = await self.run(self.kubectl_cmd + ["get", "namespace", ISTIO_NAMESPACE, "-o", "json"])
        if not result["success"]:
            if "not found" in (result["error"] or "").lower():
                return "Not installed"
            return "unknown"

        pods_result = await self.run(self.kubectl_cmd + [
            "get", "pods", "-n", ISTIO_NAMESPACE, "-l", "app=istiod", "-o", "json"
        ])
        pods = pods_result["data"].get("items", []) if (
            pods_result["success"] and isinstance(pods_result["data"], dict)
        ) else []
        if not pods:
            return "unknown"

        running = sum(1 for p in pods if (p.get("status") or {}).get("phase") == "Running")
        logger.info("istiod pods: %d/%d running", running, len(pods))

        pod = pods[0]
        pod_name = (pod.get("metadata") or {}).get("name", "")
        exec_result = await self.run(self.kubectl_cmd + [
            "exec", "-n", ISTIO_NAMESPACE, pod_name, "--",
            "pilot-discovery", "version", "-s"
        ], use_cache=False)
        if exec_result["success"]:
            version = extract_semver(str(exec_result["data"]))
            if version:
                return version

        for container in (pod.get("spec") or {}).get("containers") or []:
            image = container.get("image", "")
            version = extract_semver(image.rsplit(":", 1)[-1]) if ":" in image else None
            if version:
                return version

        return "unknown"

    # === domain listings ===

    async def list_namespaces(self) -> List[NamespaceRecord]:
        items = await self._list_items("namespaces", "namespace", namespaced=False)
        return [parse_namespace(item) for item in items]

    async def list_helm_releases(self, namespace: Optional[str] = None) -> List[HelmReleaseRecord]:
        cmd = self.helm_cmd + ["list"]
        cmd += ["-n", namespace] if namespace else ["--all-namespaces"]
        cmd += ["--output", "json"]
        data = await self._get_json(cmd, "helm_release")
        releases = [parse_helm_release(item) for item in data or []]
        if namespace:
            releases = [r for r in releases if r.namespace == namespace]
        return releases

    async def list_deployments(self, namespace: Optional[str] = None) -> List[DeploymentRecord]:
        items = await self._list_items("deployments", "deployment", namespace)
        return [parse_deployment(item) for item in items]

    async def list_pods(self, namespace: Optional[str] = None) -> List[PodRecord]:
        items = await self._list_items("pods", "pod", namespace)
        return [parse_pod(item) for item in items]

    async def list_kustomizations(self, namespace: Optional[str] = None) -> List[KustomizationRecord]:
        try:
            items = await self._list_items(KUSTOMIZATION_RESOURCE, "kustomization", namespace)
        except CollectionError as e:
            # Flux not installed: nothing to validate
            if "doesn't have a resource type" in e.message:
                return []
            raise
        return [parse_kustomization(item) for item in items]

    async def list_nodes(self) -> List[NodeRecord]:
        items = await self._list_items("nodes", "node", namespaced=False)
        return [parse_node(item) for item in items]

    async def list_ingresses(self, namespace: Optional[str] = None) -> List[IngressRecord]:
        items = await self._list_items("ingress", "ingress", namespace)
        return [parse_ingress(item) for item in items]
