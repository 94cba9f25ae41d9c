"""
Collectors - cluster state retrieval and per-domain classification

Sources list parsed records (live kubectl/helm or a fixture); the domain
collectors turn them into DomainResult values.
"""

from .source import ClusterSource
from .k8s_client import KubectlSource
from .fixture_source import FixtureSource
from .cache import ResponseCache
from .domain_collectors import (
    ClusterCollector,
    build_domain_result,
    COLLECTION_ORDER,
)

__all__ = [
    # sources
    "ClusterSource",
    "KubectlSource",
    "FixtureSource",
    # cache
    "ResponseCache",
    # collectors
    "ClusterCollector",
    "build_domain_result",
    "COLLECTION_ORDER",
]
