"""Configuration management

Configuration is resolved once at startup, either from a YAML file or from
environment variables, and then passed to the application factory as an
immutable ``AppConfig``.
"""
import os
import re
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from claude_gateway.models.config import AppConfig

load_dotenv()


def expand_env_vars(value: str) -> str:
    """Expand environment variables in string. Supports ${VAR}, ${VAR:-default}, ${VAR:default}"""
    if not isinstance(value, str):
        return value

    pattern = r'\$\{([^}:]+)(?::?-([^}]*))?\}'
    return re.sub(pattern, lambda m: os.environ.get(m.group(1), m.group(2) or ''), value)


def expand_config_env_vars(config: Any) -> Any:
    """Recursively expand environment variables in config"""
    if isinstance(config, dict):
        return {k: expand_config_env_vars(v) for k, v in config.items()}
    elif isinstance(config, list):
        return [expand_config_env_vars(item) for item in config]
    elif isinstance(config, str):
        return expand_env_vars(config)
    return config


def str_to_bool(value: Any) -> bool:
    """Convert string representation of boolean to actual boolean"""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in ('true', '1', 'yes', 'on')
    return bool(value)


def read_config_file(config_path: str = 'config.yaml') -> dict:
    """Read a YAML configuration file into a dict with environment variables expanded"""
    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    expanded_config = expand_config_env_vars(raw_config)
    expanded_config['verify_ssl'] = str_to_bool(expanded_config.get('verify_ssl', True))
    if not expanded_config.get('usage_db_url'):
        expanded_config.pop('usage_db_url', None)
    return expanded_config


def load_config(config_path: str = 'config.yaml') -> AppConfig:
    """Load and parse configuration from YAML file"""
    return AppConfig(**read_config_file(config_path))


def _provider_from_env(kind: str) -> dict:
    if kind == 'anthropic':
        return {'kind': kind, 'api_key': os.environ.get('ANTHROPIC_API_KEY', '')}
    if kind == 'bedrock':
        return {'kind': kind, 'region': os.environ.get('AWS_REGION')}
    if kind == 'vertex-ai':
        return {
            'kind': kind,
            'project': os.environ.get('VERTEXAI_PROJECT', ''),
            'region': os.environ.get('VERTEXAI_REGION', ''),
        }
    raise ValueError(
        f"Unknown provider '{kind}'. Expected 'anthropic', 'bedrock' or 'vertex-ai'"
    )


def read_env_config(provider: Optional[str] = None) -> dict:
    """Collect configuration values from environment variables"""
    kind = provider or os.environ.get('PROVIDER', 'anthropic')
    return {
        'server': {
            'host': os.environ.get('HOST', '0.0.0.0'),
            'port': int(os.environ.get('PORT', '3000')),
            'api_key': os.environ.get('AUTH_TOKEN', ''),
        },
        'provider': _provider_from_env(kind),
        'usage_db_url': os.environ.get('USAGE_DB_URL') or None,
        'verify_ssl': str_to_bool(os.environ.get('VERIFY_SSL', 'true')),
        'request_timeout_secs': int(os.environ.get('REQUEST_TIMEOUT_SECS', '300')),
        'max_retries': int(os.environ.get('MAX_RETRIES', '2')),
        'log_level': os.environ.get('LOG_LEVEL', 'INFO'),
        'log_file': os.environ.get('LOG_FILE') or None,
    }


def config_from_env(provider: Optional[str] = None) -> AppConfig:
    """Build configuration from environment variables"""
    return AppConfig(**read_env_config(provider))
