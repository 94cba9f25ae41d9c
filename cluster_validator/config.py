"""
Validator configuration

Values come from, in increasing priority: field defaults, a .env file,
environment variables, explicit overrides (CLI flags).

Environment variables:
    CLUSTER_VALIDATOR_NAMESPACE           namespace filter (default: all)
    CLUSTER_VALIDATOR_CONTEXT             kubeconfig context (default: current)
    KUBECONFIG                            kubeconfig path
    CLUSTER_VALIDATOR_TIMEOUT             per-probe HTTP timeout, seconds (10)
    CLUSTER_VALIDATOR_VERBOSE             verbose rendering (false)
    CLUSTER_VALIDATOR_MAX_CONCURRENCY     concurrent collectors/probes (5)
    CLUSTER_VALIDATOR_RUN_TIMEOUT         whole-run deadline, seconds (none)
    CLUSTER_VALIDATOR_VERIFY_TLS          verify endpoint certificates (true)
    CLUSTER_VALIDATOR_UNAVAILABLE_POLICY  ignore | warn | fail (warn)
    CLUSTER_VALIDATOR_ENABLE_CACHE        cache kubectl responses (true)
"""

import os
from typing import Dict, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import UnavailablePolicy
from .utils.errors import ConfigurationError

ENV_PREFIX = "CLUSTER_VALIDATOR_"

ENV_VARS: Dict[str, str] = {
    "namespace": ENV_PREFIX + "NAMESPACE",
    "context": ENV_PREFIX + "CONTEXT",
    "kubeconfig": "KUBECONFIG",
    "timeout": ENV_PREFIX + "TIMEOUT",
    "verbose": ENV_PREFIX + "VERBOSE",
    "max_concurrency": ENV_PREFIX + "MAX_CONCURRENCY",
    "run_timeout": ENV_PREFIX + "RUN_TIMEOUT",
    "verify_tls": ENV_PREFIX + "VERIFY_TLS",
    "unavailable_policy": ENV_PREFIX + "UNAVAILABLE_POLICY",
    "enable_cache": ENV_PREFIX + "ENABLE_CACHE",
}


class ValidatorConfig(BaseModel):
    """Settings of one validation run"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    namespace: Optional[str] = None
    context: Optional[str] = None
    kubeconfig: Optional[str] = None
    timeout: float = Field(default=10, gt=0)
    verbose: bool = False
    max_concurrency: int = Field(default=5, ge=1)
    run_timeout: Optional[float] = Field(default=None, gt=0)
    verify_tls: bool = True
    unavailable_policy: UnavailablePolicy = UnavailablePolicy.WARN
    enable_cache: bool = True

    @field_validator("namespace", "context", "kubeconfig", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("unavailable_policy", mode="before")
    @classmethod
    def _lower_policy(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **overrides) -> "ValidatorConfig":
        """
        Build a config from .env, the environment and overrides

        Args:
            env_file: .env path (default: nearest .env from the working directory)
            **overrides: field values; None means "not given"

        Raises:
            ConfigurationError: a value failed validation
        """
        load_dotenv(env_file or find_dotenv(usecwd=True))

        values = {}
        for field, var in ENV_VARS.items():
            raw = os.getenv(var)
            if raw:
                values[field] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})

        return cls.build(**values)

    @classmethod
    def build(cls, **values) -> "ValidatorConfig":
        """Validate values, raising ConfigurationError instead of ValidationError"""
        try:
            return cls(**values)
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or None
            raise ConfigurationError(
                f"Invalid configuration for {field}: {error['msg']}",
                field=field,
                value=error.get("input"),
            ) from e
