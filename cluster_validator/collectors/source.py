"""
Retrieval collaborator interface

A ClusterSource lists already-parsed records for one domain. An empty list
means "nothing found"; a failure raises CollectionError. Authentication,
context selection and pagination belong to the implementation.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

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


class ClusterSource(ABC):
    """One list operation per domain, optionally scoped to a namespace"""

    @abstractmethod
    async def get_cluster_identity(self) -> ClusterIdentity:
        ...

    @abstractmethod
    async def get_mesh_version(self) -> str:
        """Mesh version; "Not installed" when absent, "unknown" when undetectable."""

    @abstractmethod
    async def list_namespaces(self) -> List[NamespaceRecord]:
        ...

    @abstractmethod
    async def list_helm_releases(self, namespace: Optional[str] = None) -> List[HelmReleaseRecord]:
        ...

    @abstractmethod
    async def list_deployments(self, namespace: Optional[str] = None) -> List[DeploymentRecord]:
        ...

    @abstractmethod
    async def list_pods(self, namespace: Optional[str] = None) -> List[PodRecord]:
        ...

    @abstractmethod
    async def list_kustomizations(self, namespace: Optional[str] = None) -> List[KustomizationRecord]:
        ...

    @abstractmethod
    async def list_nodes(self) -> List[NodeRecord]:
        ...

    @abstractmethod
    async def list_ingresses(self, namespace: Optional[str] = None) -> List[IngressRecord]:
        ...
