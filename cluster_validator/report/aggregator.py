"""
Report aggregation

Folds per-domain results, endpoint probe results and the cluster identity
into one immutable ClusterReport:

- summary table with five fixed rows (Namespaces, Helm Releases,
  Deployments, Ingress URLs, Kustomizations): status label, healthy,
  total, issues;
- total issue count over every domain, pods and nodes included;
- overall verdict: ALL_HEALTHY iff the total is zero;
- issue breakdown grouped by domain in presentation order, empty sections
  omitted, failed issues ahead of degraded ones.

Domains whose retrieval failed follow the UnavailablePolicy: IGNORE counts
them as empty, WARN shows them as "Unknown" without adding issues, FAIL
also adds one issue per unavailable domain.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..endpoints.discovery import assign_roles, service_endpoints
from ..models import (
    ClusterIdentity,
    Domain,
    DomainResult,
    EndpointResult,
    EndpointStatus,
    HealthStatus,
    Issue,
    ResourceKey,
    SERVICE_LABELS,
    ServiceRole,
    UnavailablePolicy,
)

UNKNOWN_LABEL = "Unknown"

# (domain, component, status label) of the summary table
SUMMARY_ROWS: Tuple[Tuple[Domain, str, str], ...] = (
    (Domain.NAMESPACE, "Namespaces", "Active"),
    (Domain.HELM_RELEASE, "Helm Releases", "Deployed"),
    (Domain.DEPLOYMENT, "Deployments", "Ready"),
    (Domain.INGRESS, "Ingress URLs", "Healthy"),
    (Domain.KUSTOMIZATION, "Kustomizations", "Ready"),
)

# breakdown presentation order
SECTION_ORDER: Tuple[Tuple[Domain, str], ...] = (
    (Domain.NAMESPACE, "NAMESPACES"),
    (Domain.HELM_RELEASE, "HELM RELEASES"),
    (Domain.DEPLOYMENT, "DEPLOYMENTS"),
    (Domain.POD, "POD ISSUES"),
    (Domain.NODE, "NODES"),
    (Domain.INGRESS, "INGRESS URLs"),
    (Domain.KUSTOMIZATION, "KUSTOMIZATIONS"),
)

DOMAIN_ORDER: Tuple[Domain, ...] = tuple(domain for domain, _ in SECTION_ORDER)

_STATUS_RANK = {HealthStatus.FAILED: 0, HealthStatus.DEGRADED: 1}


class OverallVerdict(str, Enum):
    ALL_HEALTHY = "all_healthy"
    ISSUES_FOUND = "issues_found"


@dataclass(frozen=True)
class SummaryRow:
    component: str
    status: str
    healthy: int
    total: int
    issues: int


@dataclass(frozen=True)
class IssueSection:
    domain: Domain
    title: str
    issues: Tuple[Issue, ...]

    @property
    def count(self) -> int:
        return len(self.issues)


@dataclass(frozen=True)
class ClusterReport:
    """Consolidated delivery report; the only input to rendering"""
    cluster_name: str
    cluster_version: str
    mesh_version: str
    domain_results: Tuple[DomainResult, ...]
    endpoint_roles: Dict[ServiceRole, str]
    summary: Tuple[SummaryRow, ...]
    sections: Tuple[IssueSection, ...]
    total_issues: int
    verdict: OverallVerdict
    endpoint_results: Tuple[EndpointResult, ...] = ()
    unavailable: Tuple[Tuple[Domain, str], ...] = ()
    policy: UnavailablePolicy = UnavailablePolicy.WARN
    namespace: Optional[str] = None

    @property
    def all_healthy(self) -> bool:
        return self.verdict is OverallVerdict.ALL_HEALTHY

    @property
    def service_endpoints(self) -> Dict[ServiceRole, str]:
        """Every role in display order, placeholders for the missing ones"""
        return service_endpoints(self.endpoint_roles)

    def result_for(self, domain: Domain) -> DomainResult:
        for result in self.domain_results:
            if result.domain is domain:
                return result
        return DomainResult(domain=domain)

    @property
    def pods(self) -> DomainResult:
        return self.result_for(Domain.POD)

    @property
    def nodes(self) -> DomainResult:
        return self.result_for(Domain.NODE)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable form"""
        pods = self.pods
        nodes = self.nodes
        return {
            "cluster": {
                "name": self.cluster_name,
                "version": self.cluster_version,
                "mesh_version": self.mesh_version,
                "namespace": self.namespace,
                "nodes": {"ready": nodes.healthy, "total": nodes.total},
                "pods": {
                    "total": pods.total,
                    "running": pods.running,
                    "failed": pods.failed,
                    "pending": pods.pending,
                },
            },
            "service_endpoints": {
                SERVICE_LABELS[role]: url for role, url in self.service_endpoints.items()
            },
            "summary": [
                {
                    "component": row.component,
                    "status": row.status,
                    "healthy": row.healthy,
                    "total": row.total,
                    "issues": row.issues,
                }
                for row in self.summary
            ],
            "total_issues": self.total_issues,
            "verdict": self.verdict.value,
            "issues": {
                section.title: [
                    {"status": issue.status.value, "text": issue.describe()}
                    for issue in section.issues
                ]
                for section in self.sections
            },
            "endpoints": [
                {
                    "url": result.url,
                    "status": result.status.value,
                    "status_code": result.status_code,
                    "error": result.error,
                }
                for result in self.endpoint_results
            ],
            "unavailable": {domain.value: error for domain, error in self.unavailable},
            "unavailable_policy": self.policy.value,
        }


def endpoint_issue_reason(result: EndpointResult) -> str:
    if result.status is EndpointStatus.DNS_FAILED:
        return "DNS Failed"
    # curl prints 000 when no response arrived
    return f"Failed ({result.status_code or 0:03d})"


def endpoint_domain_result(results: Iterable[EndpointResult]) -> DomainResult:
    """DomainResult of the ingress domain from probe results"""
    total = 0
    healthy = 0
    issues = []
    for result in results:
        total += 1
        if result.healthy:
            healthy += 1
            continue
        candidate = result.candidate
        if candidate is not None:
            key = ResourceKey(Domain.INGRESS, candidate.namespace, candidate.ingress_name)
        else:
            key = ResourceKey(Domain.INGRESS, None, result.url)
        issues.append(Issue(
            key=key,
            status=HealthStatus.FAILED,
            reason=endpoint_issue_reason(result),
            subject=result.url,
        ))
    return DomainResult(domain=Domain.INGRESS, total=total, healthy=healthy, issues=tuple(issues))


def _ordered_results(
    domain_results: Iterable[DomainResult],
    endpoint_results: Sequence[EndpointResult],
) -> List[DomainResult]:
    by_domain = {result.domain: result for result in domain_results}
    if Domain.INGRESS not in by_domain:
        by_domain[Domain.INGRESS] = endpoint_domain_result(endpoint_results)
    return [by_domain.get(domain, DomainResult(domain=domain)) for domain in DOMAIN_ORDER]


def _prioritized(issues: Iterable[Issue]) -> Tuple[Issue, ...]:
    # sorted() is stable: discovery order within the same status
    return tuple(sorted(issues, key=lambda issue: _STATUS_RANK.get(issue.status, 2)))


def aggregate(
    domain_results: Iterable[DomainResult],
    endpoint_results: Sequence[EndpointResult],
    identity: ClusterIdentity,
    mesh_version: str = "unknown",
    policy: UnavailablePolicy = UnavailablePolicy.WARN,
    namespace: Optional[str] = None,
) -> ClusterReport:
    """
    Merge domain results into a ClusterReport

    Args:
        domain_results: one DomainResult per domain; missing domains count
            as empty. An INGRESS entry (typically unavailable) overrides the
            one derived from endpoint_results.
        endpoint_results: probe results in discovery order
        identity: cluster name and version
        mesh_version: service mesh version text
        policy: treatment of unavailable domains
        namespace: namespace filter of the run, for display

    Returns:
        ClusterReport
    """
    policy = UnavailablePolicy(policy)
    endpoint_results = tuple(endpoint_results)
    results = _ordered_results(domain_results, endpoint_results)
    by_domain = {result.domain: result for result in results}

    unavailable = tuple(
        (result.domain, result.error or "unavailable")
        for result in results
        if not result.available
    )
    if policy is UnavailablePolicy.IGNORE:
        unavailable = ()

    total_issues = sum(result.issue_count for result in results)
    if policy is UnavailablePolicy.FAIL:
        total_issues += len(unavailable)

    summary = []
    for domain, component, label in SUMMARY_ROWS:
        result = by_domain[domain]
        issues = result.issue_count
        if not result.available and policy is not UnavailablePolicy.IGNORE:
            label = UNKNOWN_LABEL
            if policy is UnavailablePolicy.FAIL:
                issues += 1
        summary.append(SummaryRow(component, label, result.healthy, result.total, issues))

    sections = []
    for domain, title in SECTION_ORDER:
        issues = by_domain[domain].issues
        if issues:
            sections.append(IssueSection(domain, title, _prioritized(issues)))

    verdict = OverallVerdict.ALL_HEALTHY if total_issues == 0 else OverallVerdict.ISSUES_FOUND

    return ClusterReport(
        cluster_name=identity.name,
        cluster_version=identity.version,
        mesh_version=mesh_version,
        domain_results=tuple(results),
        endpoint_roles=assign_roles(endpoint_results),
        summary=tuple(summary),
        sections=tuple(sections),
        total_issues=total_issues,
        verdict=verdict,
        endpoint_results=endpoint_results,
        unavailable=unavailable,
        policy=policy,
        namespace=namespace,
    )
