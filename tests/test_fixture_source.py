#!/usr/bin/env python3
"""
Fixture source: YAML loading, namespace scoping, simulated outages
"""

import asyncio
from pathlib import Path

import pytest

from cluster_validator.collectors import FixtureSource
from cluster_validator.utils.errors import CollectionError, ErrorCode

FIXTURES = Path(__file__).parent / "fixtures"


def test_from_yaml_loads_every_domain():
    source = FixtureSource.from_yaml(FIXTURES / "cluster.yaml")

    identity = asyncio.run(source.get_cluster_identity())
    assert identity.name == "prod-eu"
    assert identity.version == "1.29.2"
    assert asyncio.run(source.get_mesh_version()) == "1.20.3"

    assert len(asyncio.run(source.list_namespaces())) == 3
    assert len(asyncio.run(source.list_helm_releases())) == 3
    assert len(asyncio.run(source.list_deployments())) == 3
    assert len(asyncio.run(source.list_pods())) == 6
    assert len(asyncio.run(source.list_kustomizations())) == 2
    assert len(asyncio.run(source.list_nodes())) == 2
    assert len(asyncio.run(source.list_ingresses())) == 4


def test_namespace_scope():
    source = FixtureSource.from_yaml(FIXTURES / "cluster.yaml")

    pods = asyncio.run(source.list_pods("old"))
    assert [p.name for p in pods] == ["legacy-1"]

    ingresses = asyncio.run(source.list_ingresses("monitoring"))
    assert {i.name for i in ingresses} == {"prometheus", "alertmanager", "grafana"}

    # nodes are cluster scoped
    assert len(asyncio.run(source.list_nodes())) == 2


def test_missing_domains_are_empty():
    source = FixtureSource({})
    assert asyncio.run(source.list_pods()) == []
    assert asyncio.run(source.get_mesh_version()) == "Not installed"
    assert asyncio.run(source.get_cluster_identity()).name == "unknown"


def test_unavailable_marker_raises_collection_error():
    source = FixtureSource({"kustomizations": "unavailable"})
    with pytest.raises(CollectionError) as exc_info:
        asyncio.run(source.list_kustomizations())
    assert exc_info.value.code is ErrorCode.API_ERROR
    assert exc_info.value.domain == "kustomizations"


def test_from_yaml_rejects_non_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        FixtureSource.from_yaml(path)


def test_from_yaml_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    source = FixtureSource.from_yaml(path)
    assert asyncio.run(source.list_namespaces()) == []


def test_entry_without_name_is_rejected():
    with pytest.raises(ValueError) as exc_info:
        FixtureSource({"pods": [{"namespace": "a", "phase": "Running"}]})
    assert "Invalid pods entry #1" in str(exc_info.value)


def test_unparseable_ready_column_is_rejected():
    with pytest.raises(ValueError) as exc_info:
        FixtureSource({"deployments": [{"namespace": "a", "name": "api", "ready": "x/y"}]})
    assert "Invalid deployments entry" in str(exc_info.value)


def test_non_list_domain_is_rejected():
    with pytest.raises(ValueError):
        FixtureSource({"nodes": {"name": "node-1"}})
    with pytest.raises(ValueError):
        FixtureSource({"cluster": "prod-eu"})
