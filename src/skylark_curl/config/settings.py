"""
Configuration management for skylark-curl

Settings come from, in increasing order of precedence, built-in defaults, a
JSON configuration file, ``SKYLARK_*`` environment variables and the command
line.
"""

import dataclasses
import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from ..exceptions import ConfigurationError
from ..signing.types import Credentials

MODES = ('curl', 'proxy', 'store-secret', 'delete-secret')

# Environment variable -> config field
ENVIRONMENT_VARIABLES = {
    'SKYLARK_URI': 'uri',
    'SKYLARK_TOKEN': 'token',
    'SKYLARK_SECRET': 'secret',
    'SKYLARK_PORT': 'port',
    'SKYLARK_LOG_LEVEL': 'log_level',
}

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = 'INFO'
    format: str = '[%(asctime)s] %(message)s'
    date_format: str = '%Y-%m-%dT%H:%M:%S%z'

    def __post_init__(self):
        self.level = str(self.level).upper()
        if self.level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Unknown log level: {self.level}",
                "INVALID_LOG_LEVEL",
                {"allowed": list(LOG_LEVELS)}
            )

    def apply(self) -> None:
        """Install a UTC-stamped stderr handler on the root logger."""
        formatter = logging.Formatter(self.format, self.date_format)
        formatter.converter = time.gmtime
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        logging.basicConfig(level=self.level, handlers=[handler], force=True)


@dataclass
class ProxyConfig:
    """Proxy gateway configuration"""
    upstream_uri: str
    port: int
    bind_address: str = ''
    verify_ssl: bool = True
    timeout: Optional[float] = None


@dataclass
class SkylarkConfig:
    """
    Complete runtime configuration

    Attributes:
        mode: One of curl, proxy, store-secret, delete-secret
        uri: Target URI (curl mode) or upstream URI (proxy mode)
        token: Token id
        secret: Shared secret
        time: Explicit date header value
        port: Port the proxy listens on
        bind_address: Address the proxy binds to
        verify_ssl: Verify the upstream's TLS certificate in proxy mode
        timeout: Upstream timeout in seconds for the proxy, None for none
        curl_binary: curl executable to run
        use_keyring: Look the secret up in the OS keyring by token
        log_level: Root log level
    """
    mode: str = 'curl'
    uri: Optional[str] = None
    token: Optional[str] = None
    secret: Optional[str] = None
    time: Optional[str] = None
    port: Optional[int] = None
    bind_address: str = ''
    verify_ssl: bool = True
    timeout: Optional[float] = None
    curl_binary: str = 'curl'
    use_keyring: bool = False
    log_level: str = 'INFO'
    logging_config: LoggingConfig = field(init=False)

    def __post_init__(self):
        if self.mode not in MODES:
            raise ConfigurationError(
                f"unknown mode: {self.mode}",
                "INVALID_MODE",
                {"allowed": list(MODES)}
            )
        if self.port is not None:
            self.port = _parse_port(self.port)
        if self.timeout is not None:
            try:
                self.timeout = float(self.timeout)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Invalid timeout: {self.timeout!r}", "INVALID_TIMEOUT")
        self.logging_config = LoggingConfig(level=self.log_level)

    def credentials(self) -> Credentials:
        return Credentials(token=self.token, secret=self.secret)

    def require_uri(self) -> str:
        if not self.uri:
            raise ConfigurationError("need --uri", "MISSING_URI")
        return self.uri

    def to_proxy_config(self) -> ProxyConfig:
        """
        Settings the proxy needs to start

        Raises:
            ConfigurationError: If the upstream URI or listen port is missing
        """
        uri = self.require_uri()
        if self.port is None:
            raise ConfigurationError("need --port", "MISSING_PORT")
        return ProxyConfig(
            upstream_uri=uri,
            port=self.port,
            bind_address=self.bind_address,
            verify_ssl=self.verify_ssl,
            timeout=self.timeout,
        )

    def merged(self, overrides: Mapping[str, Any]) -> 'SkylarkConfig':
        """Copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        _check_keys(values)
        return dataclasses.replace(self, **values)


def _parse_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid port: {value!r}", "INVALID_PORT")
    if not 0 < port < 65536:
        raise ConfigurationError(f"Port out of range: {port}", "INVALID_PORT")
    return port


def _check_keys(values: Mapping[str, Any]) -> None:
    known = {f.name for f in dataclasses.fields(SkylarkConfig) if f.init}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration keys: {', '.join(unknown)}",
            "UNKNOWN_KEYS",
            {"keys": unknown}
        )


def load_config_from_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read settings from a JSON object file

    Raises:
        ConfigurationError: If the file cannot be read or is not a JSON object
    """
    path = Path(file_path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Failed to read configuration file: {e}", "FILE_ERROR")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Failed to parse configuration JSON: {e}", "PARSE_ERROR")

    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must contain a JSON object", "INVALID_FORMAT")

    _check_keys(data)
    return data


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect settings from SKYLARK_* environment variables."""
    if environ is None:
        environ = os.environ
    return {
        name: environ[variable]
        for variable, name in ENVIRONMENT_VARIABLES.items()
        if environ.get(variable)
    }


def load_config(
    file_path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None
) -> SkylarkConfig:
    """
    Build the effective configuration.

    Args:
        file_path: Optional JSON configuration file
        environ: Environment to read (defaults to os.environ)
        overrides: Command-line values; None entries are ignored

    Returns:
        SkylarkConfig: Validated configuration
    """
    config = SkylarkConfig()
    if file_path is not None:
        config = config.merged(load_config_from_file(file_path))
    config = config.merged(load_config_from_env(environ))
    if overrides:
        config = config.merged(overrides)
    return config
