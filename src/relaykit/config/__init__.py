"""Application configuration helpers."""

from __future__ import annotations

from .dispatch import DispatchConfig, get_dispatch_config
from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .iexec import IExecConfig, get_iexec_config
from .logging import configure_logging

__all__ = [
    "ConfigurationError",
    "DispatchConfig",
    "IExecConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "configure_logging",
    "get_dispatch_config",
    "get_iexec_config",
    "optional_env_var",
    "require_env_vars",
]
