"""Core domain types and logic."""

from .config import (
    ChangelogConfig,
    ConfigError,
    KudetConfig,
    ReleaseConfig,
    load_config,
    load_config_or_default,
)
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "ChangelogConfig",
    "ConfigError",
    "KudetConfig",
    "ReleaseConfig",
    "load_config",
    "load_config_or_default",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
