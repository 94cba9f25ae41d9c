#!/usr/bin/env python3
"""
Endpoint discovery: candidate extraction and service role assignment
"""

from cluster_validator.endpoints import assign_roles, extract_candidates, role_for_host, service_endpoints
from cluster_validator.models import (
    EndpointResult,
    EndpointStatus,
    IngressRecord,
    IngressRule,
    NOT_FOUND,
    SERVICE_ROLES,
    ServiceRole,
    TO_BE_CONFIGURED,
)


def _healthy(url, code=200):
    return EndpointResult(url, EndpointStatus.HEALTHY, status_code=code)


def test_candidates_one_per_path_with_default():
    ingresses = [
        IngressRecord("monitoring", "grafana", (
            IngressRule("grafana.example.com", ("/", "/api")),
            IngressRule("prometheus.example.com"),
        )),
        IngressRecord("prod", "nohost", (IngressRule(None, ("/x",)),)),
    ]
    candidates = extract_candidates(ingresses)

    assert [c.url for c in candidates] == [
        "https://grafana.example.com/",
        "https://grafana.example.com/api",
        "https://prometheus.example.com/",
    ]
    assert candidates[0].namespace == "monitoring"
    assert candidates[0].ingress_name == "grafana"


def test_candidates_keep_duplicates():
    ingresses = [
        IngressRecord("a", "one", (IngressRule("app.example.com"),)),
        IngressRecord("b", "two", (IngressRule("app.example.com"),)),
    ]
    candidates = extract_candidates(ingresses)
    assert len(candidates) == 2
    assert {c.ingress_name for c in candidates} == {"one", "two"}


def test_no_ingresses_no_candidates():
    assert extract_candidates([]) == []


def test_role_for_host_patterns():
    assert role_for_host("prometheus.example.com") is ServiceRole.PROMETHEUS
    assert role_for_host("alertmanager.example.com") is ServiceRole.ALERTMANAGER
    assert role_for_host("prometheus-alertmanager.example.com") is ServiceRole.ALERTMANAGER
    assert role_for_host("grafana.example.com") is ServiceRole.GRAFANA
    assert role_for_host("k8s-dashboard.example.com") is ServiceRole.DASHBOARD
    assert role_for_host("thanos-sidecar.example.com") is ServiceRole.THANOS
    assert role_for_host("thanos-sc.example.com") is ServiceRole.THANOS
    assert role_for_host("kiali.example.com") is ServiceRole.KIALI
    assert role_for_host("vault.example.com") is None
    assert role_for_host("api.example.com") is None


def test_prometheus_excludes_alertmanager_hosts():
    roles = assign_roles([_healthy("https://prometheus.alertmanager.example.com/")])
    assert ServiceRole.PROMETHEUS not in roles


def test_first_healthy_match_wins():
    roles = assign_roles([
        EndpointResult("https://grafana.down.example.com/", EndpointStatus.DNS_FAILED),
        _healthy("https://grafana.a.example.com/"),
        _healthy("https://grafana.b.example.com/"),
    ])
    assert roles[ServiceRole.GRAFANA] == "https://grafana.a.example.com/"


def test_thanos_sidecar_has_precedence():
    roles = assign_roles([
        _healthy("https://thanos-sidecar.x.com/"),
        _healthy("https://thanos-sc.y.com/"),
    ])
    assert roles[ServiceRole.THANOS] == "https://thanos-sidecar.x.com/"

    roles = assign_roles([
        _healthy("https://thanos-sc.y.com/"),
        _healthy("https://thanos-sidecar.x.com/"),
    ])
    assert roles[ServiceRole.THANOS] == "https://thanos-sidecar.x.com/"


def test_thanos_sc_alone_is_assigned():
    roles = assign_roles([_healthy("https://thanos-sc.y.com/")])
    assert roles[ServiceRole.THANOS] == "https://thanos-sc.y.com/"


def test_unhealthy_endpoints_never_assigned():
    roles = assign_roles([
        EndpointResult("https://kiali.example.com/", EndpointStatus.HTTP_FAILED),
    ])
    assert roles == {}


def test_service_endpoints_placeholders():
    endpoints = service_endpoints({})

    assert list(endpoints) == SERVICE_ROLES
    assert endpoints[ServiceRole.VAULT] == TO_BE_CONFIGURED
    for role in SERVICE_ROLES:
        if role is not ServiceRole.VAULT:
            assert endpoints[role] == NOT_FOUND


def test_service_endpoints_with_prometheus():
    roles = assign_roles([_healthy("https://prometheus.example.com/")])
    endpoints = service_endpoints(roles)
    assert endpoints[ServiceRole.PROMETHEUS] == "https://prometheus.example.com/"
    assert endpoints[ServiceRole.GRAFANA] == NOT_FOUND
