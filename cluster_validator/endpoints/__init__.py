"""
Ingress endpoint discovery and liveness probing
"""

from .discovery import (
    ROLE_RULES,
    assign_roles,
    extract_candidates,
    role_for_host,
    service_endpoints,
)
from .probe import EndpointProbe, resolve_host

__all__ = [
    "ROLE_RULES",
    "assign_roles",
    "extract_candidates",
    "role_for_host",
    "service_endpoints",
    "EndpointProbe",
    "resolve_host",
]
