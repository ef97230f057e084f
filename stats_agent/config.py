"""
Agent configuration.

Values come from an optional YAML file (``agent:`` section) and the
process environment, with the environment taking precedence. The result
is an immutable AgentConfig built once at startup.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from stats_agent.log import get_logger

logger = get_logger(__name__)

DEFAULT_TOKEN = 'your-secret-agent-token'
DEFAULT_TOKEN_HEADER = 'agent_token'
DEFAULT_HOST = '0.0.0.0'
DEFAULT_PORT = 8273
DEFAULT_COMMAND_TIMEOUT = 5.0

ENVIRONMENTS = ('development', 'test', 'production')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

# config key -> environment variable
ENV_VARS = {
    'token': 'AGENT_TOKEN',
    'token_header': 'AGENT_TOKEN_HEADER',
    'host': 'AGENT_HOST',
    'port': 'AGENT_PORT',
    'environment': 'AGENT_ENV',
    'command_timeout': 'AGENT_COMMAND_TIMEOUT',
    'log_level': 'AGENT_LOG_LEVEL',
    'log_file': 'AGENT_LOG_FILE',
}


class ConfigError(ValueError):
    """Raised when the agent configuration is missing or invalid"""


@dataclass(frozen=True)
class AgentConfig:
    """Process-wide, read-only agent settings"""
    token: str = DEFAULT_TOKEN
    token_header: str = DEFAULT_TOKEN_HEADER
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    environment: str = 'development'
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    log_level: str = 'INFO'
    log_file: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment == 'production'

    def with_overrides(self, **overrides: Any) -> 'AgentConfig':
        """Return a copy with the non-None overrides applied and validated"""
        values = {key: value for key, value in overrides.items() if value is not None}
        if not values:
            return self
        raw = {key: getattr(self, key) for key in ENV_VARS}
        raw.update(values)
        return replace(self, **_validate(raw))


def _read_file(config_path: str) -> Dict[str, Any]:
    path = Path(config_path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    section = data.get('agent', {}) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'agent' section in {path} must be a mapping")

    unknown = set(section) - set(ENV_VARS)
    if unknown:
        raise ConfigError(f"Unknown agent settings: {', '.join(sorted(unknown))}")

    return dict(section)


def _validate(raw: Dict[str, Any]) -> Dict[str, Any]:
    values = dict(raw)

    try:
        port = int(values.get('port', DEFAULT_PORT))
    except (TypeError, ValueError):
        raise ConfigError(f"Port must be an integer, got {values.get('port')!r}")
    if not 1 <= port <= 65535:
        raise ConfigError(f"Port must be between 1 and 65535, got {port}")
    values['port'] = port

    try:
        timeout = float(values.get('command_timeout', DEFAULT_COMMAND_TIMEOUT))
    except (TypeError, ValueError):
        raise ConfigError(
            f"Command timeout must be a number, got {values.get('command_timeout')!r}"
        )
    if timeout <= 0:
        raise ConfigError(f"Command timeout must be positive, got {timeout}")
    values['command_timeout'] = timeout

    environment = str(values.get('environment', 'development')).lower()
    if environment not in ENVIRONMENTS:
        raise ConfigError(
            f"Environment must be one of {', '.join(ENVIRONMENTS)}, got {environment!r}"
        )
    values['environment'] = environment

    log_level = str(values.get('log_level', 'INFO')).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"Unknown log level {log_level!r}")
    values['log_level'] = log_level

    header = str(values.get('token_header') or DEFAULT_TOKEN_HEADER).strip()
    if not header:
        raise ConfigError("Token header name must not be empty")
    values['token_header'] = header

    return values


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None
) -> AgentConfig:
    """
    Build the agent configuration.

    Args:
        config_path: Optional YAML file with an ``agent:`` section
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated AgentConfig

    Raises:
        ConfigError: on invalid values, or when no token is set in production
    """
    if environ is None:
        environ = os.environ

    raw: Dict[str, Any] = {}
    if config_path:
        raw.update(_read_file(config_path))

    for key, var in ENV_VARS.items():
        value = environ.get(var)
        if value not in (None, ''):
            raw[key] = value

    values = _validate(raw)

    if not values.get('token'):
        if values['environment'] == 'production':
            raise ConfigError(
                f"{ENV_VARS['token']} must be set explicitly in production"
            )
        logger.warning(
            "No agent token configured, using the development default",
            extra={'context': {'environment': values['environment']}}
        )
        values['token'] = DEFAULT_TOKEN

    values['token'] = str(values['token'])
    return AgentConfig(**values)

