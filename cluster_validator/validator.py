"""
Validation run orchestration

Steps of one run:
1. cluster identity and service mesh version
2. domain collectors, concurrently (bounded by max_concurrency)
3. ingress endpoint discovery and probing, concurrently (same bound)
4. role assignment and aggregation, once every probe has finished

An optional run_timeout bounds the whole run; on expiry in-flight
collectors and probes are cancelled and RunTimeoutError is raised.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Tuple

from .collectors import ClusterCollector, ClusterSource, KubectlSource
from .config import ValidatorConfig
from .endpoints import EndpointProbe, extract_candidates
from .models import (
    ClusterIdentity,
    Domain,
    DomainResult,
    EndpointResult,
    EndpointStatus,
)
from .report import ClusterReport, aggregate
from .utils.errors import ClusterUnreachableError, CollectionError, RunTimeoutError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

_DOMAIN_TITLES = {
    Domain.NAMESPACE: "namespaces",
    Domain.HELM_RELEASE: "Helm releases",
    Domain.DEPLOYMENT: "deployments",
    Domain.POD: "pods",
    Domain.KUSTOMIZATION: "Kustomizations",
    Domain.NODE: "nodes",
}


def domain_progress(result: DomainResult) -> str:
    """One-line summary of a domain, in the style of the progress output"""
    title = _DOMAIN_TITLES.get(result.domain, result.domain.value)
    if not result.available:
        return f"❌ Could not check {title}: {result.error}"
    if result.domain is Domain.POD:
        return (
            f"ℹ️  Total pods: {result.total}, Running: {result.running}, "
            f"Failed: {result.failed}, Pending: {result.pending}"
        )
    return f"ℹ️  Total {title}: {result.total}, Healthy: {result.healthy}, Issues: {result.issue_count}"


def endpoint_progress(index: int, total: int, result: EndpointResult) -> str:
    if result.status is EndpointStatus.HEALTHY:
        return f"✅ [{index}/{total}] {result.url}: HTTP {result.status_code}"
    if result.status is EndpointStatus.DNS_FAILED:
        return f"❌ [{index}/{total}] {result.url}: DNS failed to resolve"
    return f"❌ [{index}/{total}] {result.url}: connection failed (Status: {result.status_code or 0:03d})"


class ClusterValidator:
    """One point-in-time validation of a cluster

    Example:
        config = ValidatorConfig(namespace="prod", timeout=5)
        validator = ClusterValidator(FixtureSource.from_yaml("cluster.yaml"), config)
        report = await validator.run()
    """

    def __init__(
        self,
        source: Optional[ClusterSource] = None,
        config: Optional[ValidatorConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
        probe: Optional[EndpointProbe] = None,
    ):
        """
        Args:
            source: retrieval collaborator (default: KubectlSource from config)
            config: run configuration (default: ValidatorConfig())
            progress_callback: receives one line per progress step
            probe: endpoint probe (default: from config timeout/verify_tls)
        """
        self.config = config or ValidatorConfig()
        self.source = source or KubectlSource(
            context=self.config.context,
            kubeconfig=self.config.kubeconfig,
            enable_cache=self.config.enable_cache,
        )
        self.probe = probe or EndpointProbe(
            timeout=self.config.timeout,
            verify_tls=self.config.verify_tls,
        )
        self.progress_callback = progress_callback

    def _progress(self, message: str):
        if self.progress_callback:
            self.progress_callback(message)

    async def run(self) -> ClusterReport:
        """
        Run the validation

        Raises:
            RunTimeoutError: run_timeout expired
            ClusterUnreachableError: no retrieval succeeded at all
        """
        run_timeout = self.config.run_timeout
        if run_timeout is None:
            return await self._run()
        try:
            return await asyncio.wait_for(self._run(), timeout=run_timeout)
        except asyncio.TimeoutError:
            raise RunTimeoutError(run_timeout) from None

    async def _identity(self) -> ClusterIdentity:
        try:
            return await self.source.get_cluster_identity()
        except CollectionError as e:
            logger.warning("cluster identity unavailable: %s", e.message)
            return ClusterIdentity()

    async def _mesh_version(self) -> str:
        try:
            return await self.source.get_mesh_version()
        except CollectionError as e:
            logger.warning("mesh version unavailable: %s", e.message)
            return "unknown"

    async def _check_endpoints(
        self, collector: ClusterCollector
    ) -> Tuple[List[EndpointResult], Optional[DomainResult]]:
        """Probe results, plus an unavailable ingress result if listing failed"""
        try:
            ingresses = await collector.collect_ingresses()
        except CollectionError as e:
            logger.warning("ingress collection unavailable: %s", e.message)
            self._progress("❌ Failed to get ingress resources. Check your permissions and cluster access.")
            return [], DomainResult.unavailable(Domain.INGRESS, e.message)

        candidates = extract_candidates(ingresses)
        if not candidates:
            self._progress("⚠️  No ingress resources found or no URLs extracted.")
            return [], None

        self._progress(f"ℹ️  Found {len(candidates)} URLs to test")
        results = await self.probe.probe_all(candidates, max_concurrent=self.config.max_concurrency)
        for i, result in enumerate(results, 1):
            self._progress(endpoint_progress(i, len(results), result))

        healthy = sum(1 for r in results if r.healthy)
        dns_failed = sum(1 for r in results if r.status is EndpointStatus.DNS_FAILED)
        self._progress(
            f"ℹ️  Ingress URLs tested: {len(results)}, Healthy: {healthy}, "
            f"DNS failures: {dns_failed}, HTTP failures: {len(results) - healthy - dns_failed}"
        )
        return results, None

    async def _run(self) -> ClusterReport:
        config = self.config
        self._progress("🔍 Starting Kubernetes Cluster Validation")

        identity, mesh_version = await asyncio.gather(self._identity(), self._mesh_version())
        self._progress(f"ℹ️  Cluster: {identity.name}")
        self._progress(f"ℹ️  Cluster version: {identity.version}")
        self._progress(f"ℹ️  Istio version: {mesh_version}")

        collector = ClusterCollector(self.source, namespace=config.namespace)

        self._progress("📋 Checking namespaces, Helm releases, deployments, pods, Kustomizations and nodes")
        domain_results = await collector.collect_all(max_concurrent=config.max_concurrency)
        for result in domain_results:
            self._progress(domain_progress(result))

        self._progress("📋 Checking Ingress URLs")
        endpoint_results, ingress_result = await self._check_endpoints(collector)
        if ingress_result is not None:
            domain_results.append(ingress_result)

        if ingress_result is not None and all(not r.available for r in domain_results):
            raise ClusterUnreachableError(
                "Unable to reach the cluster: every retrieval failed",
                details={"context": config.context or "current"},
            )

        report = aggregate(
            domain_results,
            endpoint_results,
            identity,
            mesh_version=mesh_version,
            policy=config.unavailable_policy,
            namespace=config.namespace,
        )
        self._progress("🔍 Cluster validation completed!")
        return report


def validate_cluster(
    config: Optional[ValidatorConfig] = None,
    source: Optional[ClusterSource] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> ClusterReport:
    """Synchronous wrapper around ClusterValidator.run"""
    validator = ClusterValidator(source, config, progress_callback)
    return asyncio.run(validator.run())
