"""
Fixture cluster source

Serves records from a plain mapping (usually loaded from YAML) so the full
validation pipeline can run without a cluster: offline dry runs with
`--fixture`, and the test suite.

Fixture layout:

    cluster: {name: prod-eu, version: "1.29.2"}
    mesh_version: "1.20.3"
    namespaces:
      - {name: prod, phase: Active}
    deployments:
      - {namespace: prod, name: api, ready: "2/2", available: 2}
    pods:
      - {namespace: prod, name: api-1, phase: Running, ready: "1/1", restarts: 0}
    kustomizations: unavailable      # simulate a failing collaborator
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml

from ..models import (
    ClusterIdentity,
    DeploymentRecord,
    HelmReleaseRecord,
    IngressRecord,
    KustomizationRecord,
    NamespaceRecord,
    NodeRecord,
    PodRecord,
)
from ..utils.errors import CollectionError
from .parsers import (
    deployment_from_fixture,
    helm_release_from_fixture,
    identity_from_fixture,
    ingress_from_fixture,
    kustomization_from_fixture,
    namespace_from_fixture,
    node_from_fixture,
    pod_from_fixture,
)
from .source import ClusterSource

UNAVAILABLE = "unavailable"

# fixture key -> record factory
_FACTORIES: Dict[str, Callable[[Dict], Any]] = {
    "namespaces": namespace_from_fixture,
    "helm_releases": helm_release_from_fixture,
    "deployments": deployment_from_fixture,
    "pods": pod_from_fixture,
    "kustomizations": kustomization_from_fixture,
    "nodes": node_from_fixture,
    "ingresses": ingress_from_fixture,
}


def _convert(key: str, entries: Any) -> Union[str, List[Any]]:
    """Records for one fixture key, or the unavailable marker

    Raises:
        ValueError: the entries do not describe records of that kind
    """
    if entries == UNAVAILABLE:
        return UNAVAILABLE
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ValueError(f"Fixture key {key!r} must be a list or {UNAVAILABLE!r}")

    factory = _FACTORIES[key]
    records = []
    for i, entry in enumerate(entries):
        try:
            records.append(factory(entry))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ValueError(f"Invalid {key} entry #{i + 1}: {entry!r} ({type(e).__name__}: {e})") from e
    return records


class FixtureSource(ClusterSource):
    """ClusterSource serving records from an in-memory mapping

    Every entry is converted up front, so a malformed fixture fails at
    construction with ValueError rather than inside a collector.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data = data or {}
        self._records_by_key = {key: _convert(key, self.data.get(key)) for key in _FACTORIES}

        cluster = self.data.get("cluster")
        if cluster == UNAVAILABLE:
            self._identity: Optional[ClusterIdentity] = None
        elif cluster is None or isinstance(cluster, dict):
            self._identity = identity_from_fixture(cluster)
        else:
            raise ValueError(f"Fixture key 'cluster' must be a mapping or {UNAVAILABLE!r}")

        # domain -> number of list calls, handy for asserting caching/gating
        self.calls: Dict[str, int] = {}

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "FixtureSource":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Fixture {path} must be a mapping, got {type(data).__name__}")
        return cls(data)

    def _records(self, key: str) -> List[Any]:
        self.calls[key] = self.calls.get(key, 0) + 1
        records = self._records_by_key[key]
        if records == UNAVAILABLE:
            raise CollectionError(f"{key} listing unavailable", domain=key)
        return list(records)

    @staticmethod
    def _scoped(records: List[Any], namespace: Optional[str]) -> List[Any]:
        if not namespace:
            return records
        return [r for r in records if r.namespace == namespace]

    async def get_cluster_identity(self) -> ClusterIdentity:
        if self._identity is None:
            raise CollectionError("cluster identity unavailable", domain="cluster")
        return self._identity

    async def get_mesh_version(self) -> str:
        return str(self.data.get("mesh_version") or "Not installed")

    async def list_namespaces(self) -> List[NamespaceRecord]:
        return self._records("namespaces")

    async def list_helm_releases(self, namespace: Optional[str] = None) -> List[HelmReleaseRecord]:
        return self._scoped(self._records("helm_releases"), namespace)

    async def list_deployments(self, namespace: Optional[str] = None) -> List[DeploymentRecord]:
        return self._scoped(self._records("deployments"), namespace)

    async def list_pods(self, namespace: Optional[str] = None) -> List[PodRecord]:
        return self._scoped(self._records("pods"), namespace)

    async def list_kustomizations(self, namespace: Optional[str] = None) -> List[KustomizationRecord]:
        return self._scoped(self._records("kustomizations"), namespace)

    async def list_nodes(self) -> List[NodeRecord]:
        return self._records("nodes")

    async def list_ingresses(self, namespace: Optional[str] = None) -> List[IngressRecord]:
        return self._scoped(self._records("ingresses"), namespace)
