"""
Validation error types

Structured errors for retrieval, configuration and run-level failures.
Classification and probing never raise; their failures are verdicts.
"""

from enum import Enum
from typing import Dict, Any, Optional


class ErrorCode(Enum):
    """Validation error codes"""

    # timeouts
    TIMEOUT = "TIMEOUT"
    RUN_TIMEOUT = "RUN_TIMEOUT"

    # permissions
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # resources
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # collaborator / API
    API_ERROR = "API_ERROR"
    CLUSTER_UNREACHABLE = "CLUSTER_UNREACHABLE"

    # configuration
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INVALID_PARAMETER = "INVALID_PARAMETER"

    UNKNOWN = "UNKNOWN"


class ValidatorError(Exception):
    """Base class for cluster validation errors

    Attributes:
        message: error message
        code: error code
        details: extra context (domain, command, ...)
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code.value,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.value}] {self.message} ({details_str})"
        return f"[{self.code.value}] {self.message}"


class CollectionError(ValidatorError):
    """A retrieval call failed for one domain

    Collectors turn this into an unavailable DomainResult instead of
    propagating it.
    """

    def __init__(
        self,
        message: str,
        domain: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        all_details = details or {}
        if domain:
            all_details["domain"] = domain

        lowered = message.lower()
        if "forbidden" in lowered:
            code = ErrorCode.PERMISSION_DENIED
        elif "timed out" in lowered:
            code = ErrorCode.TIMEOUT
        elif "not found" in lowered:
            code = ErrorCode.RESOURCE_NOT_FOUND
        else:
            code = ErrorCode.API_ERROR

        self.domain = domain
        super().__init__(message, code, all_details)


class ConfigurationError(ValidatorError):
    """Invalid configuration value"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None
    ):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ClusterUnreachableError(ValidatorError):
    """No retrieval succeeded at all"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.CLUSTER_UNREACHABLE, details)


class RunTimeoutError(ValidatorError):
    """The whole-run deadline expired"""

    def __init__(self, timeout: float):
        super().__init__(
            f"Validation run exceeded {timeout}s",
            ErrorCode.RUN_TIMEOUT,
            {"run_timeout": timeout}
        )
