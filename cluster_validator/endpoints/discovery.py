"""
Endpoint discovery

Two steps around the probe:
1. extract_candidates - ingress rules to (namespace, ingress, host, path)
   candidates, one per path, "/" when a rule declares none; no dedup.
2. assign_roles - healthy probe results to well-known service roles by
   hostname pattern. Runs once, after every probe has finished.

Role patterns are checked in order; the first rule matching a host decides
its role. A role keeps the first URL assigned to it, except that a rule
with higher precedence (thanos-sidecar over thanos-sc) replaces a URL
assigned by a lower one.
"""

from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from ..models import (
    EndpointCandidate,
    EndpointResult,
    IngressRecord,
    NOT_FOUND,
    SERVICE_ROLES,
    ServiceRole,
    TO_BE_CONFIGURED,
)


class RoleRule(NamedTuple):
    pattern: str
    role: ServiceRole
    precedence: int = 0
    exclude: Optional[str] = None

    def matches(self, host: str) -> bool:
        if self.pattern not in host:
            return False
        return not (self.exclude and self.exclude in host)


ROLE_RULES: Tuple[RoleRule, ...] = (
    RoleRule("prometheus.", ServiceRole.PROMETHEUS, exclude="alertmanager"),
    RoleRule("alertmanager.", ServiceRole.ALERTMANAGER),
    RoleRule("grafana.", ServiceRole.GRAFANA),
    RoleRule("dashboard.", ServiceRole.DASHBOARD),
    RoleRule("thanos-sidecar.", ServiceRole.THANOS, precedence=1),
    RoleRule("thanos-sc.", ServiceRole.THANOS),
    RoleRule("kiali.", ServiceRole.KIALI),
)


def extract_candidates(ingresses: Iterable[IngressRecord]) -> List[EndpointCandidate]:
    """
    Probe candidates from ingress records

    Rules without a host are skipped. Duplicate host/path pairs from
    different ingresses are kept; each is probed on its own.
    """
    candidates = []
    for ingress in ingresses:
        for rule in ingress.rules:
            if not rule.host:
                continue
            for path in rule.paths or ("/",):
                candidates.append(EndpointCandidate(
                    namespace=ingress.namespace,
                    ingress_name=ingress.name,
                    host=rule.host,
                    path=path or "/",
                ))
    return candidates


def match_role(host: str) -> Optional[RoleRule]:
    """First role rule matching host, None when the host has no known role"""
    host = (host or "").lower()
    for rule in ROLE_RULES:
        if rule.matches(host):
            return rule
    return None


def role_for_host(host: str) -> Optional[ServiceRole]:
    rule = match_role(host)
    return rule.role if rule else None


def assign_roles(results: Iterable[EndpointResult]) -> Dict[ServiceRole, str]:
    """
    Map service roles to healthy endpoint URLs

    Args:
        results: probe results in discovery order

    Returns:
        {role: url}; roles without a healthy match are absent. Vault is
        never discovered.
    """
    assigned: Dict[ServiceRole, Tuple[str, int]] = {}
    for result in results:
        if not result.healthy:
            continue
        rule = match_role(result.host)
        if rule is None:
            continue
        current = assigned.get(rule.role)
        if current is None or rule.precedence > current[1]:
            assigned[rule.role] = (result.url, rule.precedence)
    return {role: url for role, (url, _) in assigned.items()}


def service_endpoints(roles: Dict[ServiceRole, str]) -> Dict[ServiceRole, str]:
    """Display mapping for every known role, in report order"""
    endpoints = {}
    for role in SERVICE_ROLES:
        if role is ServiceRole.VAULT:
            endpoints[role] = TO_BE_CONFIGURED
        else:
            endpoints[role] = roles.get(role, NOT_FOUND)
    return endpoints
