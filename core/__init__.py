"""Core modules for configuration and logging."""

from core.config import (
    AppConfig,
    AuthConfig,
    ConfigurationError,
    GoogleConfig,
    get_config,
    load_config_from_env,
    reset_config,
)
from core.logging_config import (
    LogContext,
    generate_request_id,
    setup_logging,
)

__all__ = [
    "AppConfig",
    "AuthConfig",
    "GoogleConfig",
    "ConfigurationError",
    "load_config_from_env",
    "get_config",
    "reset_config",
    "setup_logging",
    "LogContext",
    "generate_request_id",
]
