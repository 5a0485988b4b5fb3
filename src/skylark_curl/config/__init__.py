"""
Configuration management for skylark-curl
"""

from .settings import (
    MODES,
    ENVIRONMENT_VARIABLES,
    LoggingConfig,
    ProxyConfig,
    SkylarkConfig,
    load_config,
    load_config_from_env,
    load_config_from_file,
)

__all__ = [
    'MODES',
    'ENVIRONMENT_VARIABLES',
    'LoggingConfig',
    'ProxyConfig',
    'SkylarkConfig',
    'load_config',
    'load_config_from_env',
    'load_config_from_file',
]
