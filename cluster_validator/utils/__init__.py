"""
Utility module
"""

from .errors import (
    ValidatorError,
    ErrorCode,
    CollectionError,
    ConfigurationError,
    ClusterUnreachableError,
    RunTimeoutError,
)
from .retry import retry_on_k8s_error
from .concurrency import execute_with_limit

__all__ = [
    "ValidatorError",
    "ErrorCode",
    "CollectionError",
    "ConfigurationError",
    "ClusterUnreachableError",
    "RunTimeoutError",
    "retry_on_k8s_error",
    "execute_with_limit",
]
