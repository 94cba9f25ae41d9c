"""
Domain collectors

One coroutine per domain: list records through the ClusterSource, apply the
namespace scope and namespace-active gating, classify every record and
return an immutable DomainResult. A CollectionError never escapes a
collector; the domain is returned as unavailable instead.

Gating applies to deployments and pods: records in a namespace that is not
Active are dropped before classification (not counted, not reported).
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional, Set

from ..classifier import classify, classify_namespace
from ..models import (
    Domain,
    DomainResult,
    IngressRecord,
    Issue,
    NamespaceRecord,
    NodeRecord,
)
from ..utils.concurrency import execute_with_limit
from ..utils.errors import CollectionError
from .source import ClusterSource

logger = logging.getLogger(__name__)

# phase reported for a filtered namespace that does not exist
NAMESPACE_NOT_FOUND = "NotFound"

COLLECTION_ORDER = (
    Domain.NAMESPACE,
    Domain.HELM_RELEASE,
    Domain.DEPLOYMENT,
    Domain.POD,
    Domain.KUSTOMIZATION,
    Domain.NODE,
)


def node_subject(record: NodeRecord) -> str:
    return f"Node {record.name}"


def build_domain_result(
    domain: Domain,
    records: Iterable,
    subject: Optional[Callable[[object], str]] = None,
) -> DomainResult:
    """
    Classify records into a DomainResult

    Args:
        domain: domain of the records
        records: already scoped and gated records
        subject: display prefix for issues (default "ns/name")

    Returns:
        DomainResult with issues in record order
    """
    total = 0
    healthy = 0
    issues: List[Issue] = []
    for record in records:
        total += 1
        verdict = classify(record)
        if verdict.healthy:
            healthy += 1
            continue
        issues.append(Issue(
            key=record.key,
            status=verdict.status,
            reason=verdict.reason,
            subject=subject(record) if subject else None,
        ))
    return DomainResult(domain=domain, total=total, healthy=healthy, issues=tuple(issues))


class ClusterCollector:
    """Per-run collectors over one ClusterSource

    Example:
        collector = ClusterCollector(source, namespace="prod")
        pods = await collector.collect_pods()
        print(pods.running, pods.failed, pods.pending)
    """

    def __init__(self, source: ClusterSource, namespace: Optional[str] = None):
        self.source = source
        self.namespace = namespace
        # namespace listing shared by the namespace collector and gating
        self._namespaces_task: Optional[asyncio.Future] = None

    async def _list_namespaces(self) -> List[NamespaceRecord]:
        records = await self.source.list_namespaces()
        if not self.namespace:
            return records
        scoped = [r for r in records if r.name == self.namespace]
        return scoped or [NamespaceRecord(self.namespace, NAMESPACE_NOT_FOUND)]

    async def namespace_records(self) -> List[NamespaceRecord]:
        if self._namespaces_task is None:
            self._namespaces_task = asyncio.ensure_future(self._list_namespaces())
        return await self._namespaces_task

    async def active_namespaces(self) -> Optional[Set[str]]:
        """Names of Active namespaces, None when the listing failed"""
        try:
            records = await self.namespace_records()
        except CollectionError as e:
            logger.warning("namespace listing failed, namespace gating disabled: %s", e.message)
            return None
        return {r.name for r in records if classify_namespace(r).healthy}

    async def _collect(
        self,
        domain: Domain,
        fetch: Callable[[], Awaitable[List]],
        gated: bool = False,
        subject: Optional[Callable[[object], str]] = None,
    ) -> DomainResult:
        try:
            records = await fetch()
        except CollectionError as e:
            logger.warning("%s collection unavailable: %s", domain.value, e.message)
            return DomainResult.unavailable(domain, e.message)

        if gated:
            active = await self.active_namespaces()
            if active is not None:
                skipped = [r for r in records if r.namespace not in active]
                if skipped:
                    logger.debug("%s: %d records skipped in inactive namespaces", domain.value, len(skipped))
                records = [r for r in records if r.namespace in active]

        result = build_domain_result(domain, records, subject)
        logger.info(
            "%s: total %d, healthy %d, failed %d, degraded %d",
            domain.value, result.total, result.healthy, result.failed, result.degraded,
        )
        return result

    async def collect_namespaces(self) -> DomainResult:
        return await self._collect(Domain.NAMESPACE, self.namespace_records)

    async def collect_helm_releases(self) -> DomainResult:
        return await self._collect(
            Domain.HELM_RELEASE,
            lambda: self.source.list_helm_releases(self.namespace),
        )

    async def collect_deployments(self) -> DomainResult:
        return await self._collect(
            Domain.DEPLOYMENT,
            lambda: self.source.list_deployments(self.namespace),
            gated=True,
        )

    async def collect_pods(self) -> DomainResult:
        """Pods in Active namespaces; running/failed/pending partition the total"""
        return await self._collect(
            Domain.POD,
            lambda: self.source.list_pods(self.namespace),
            gated=True,
        )

    async def collect_kustomizations(self) -> DomainResult:
        return await self._collect(
            Domain.KUSTOMIZATION,
            lambda: self.source.list_kustomizations(self.namespace),
        )

    async def collect_nodes(self) -> DomainResult:
        # cluster scoped: the namespace filter does not apply
        return await self._collect(Domain.NODE, self.source.list_nodes, subject=node_subject)

    async def collect_ingresses(self) -> List[IngressRecord]:
        """Ingress records for endpoint discovery

        Raises:
            CollectionError: the listing failed
        """
        return await self.source.list_ingresses(self.namespace)

    async def collect_all(self, max_concurrent: int = 5) -> List[DomainResult]:
        """Run every classifying collector concurrently

        Returns:
            DomainResults in COLLECTION_ORDER
        """
        collectors = {
            Domain.NAMESPACE: self.collect_namespaces,
            Domain.HELM_RELEASE: self.collect_helm_releases,
            Domain.DEPLOYMENT: self.collect_deployments,
            Domain.POD: self.collect_pods,
            Domain.KUSTOMIZATION: self.collect_kustomizations,
            Domain.NODE: self.collect_nodes,
        }
        results = await execute_with_limit(
            [collectors[domain]() for domain in COLLECTION_ORDER],
            max_concurrent=max_concurrent,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)


__all__ = [
    "ClusterCollector",
    "build_domain_result",
    "node_subject",
    "COLLECTION_ORDER",
    "NAMESPACE_NOT_FOUND",
]
