"""
Configuration loading and validation for MySQL Backup.

Connection settings are resolved with priority:
command-line flag > YAML config section > prefixed environment variables
(SRC_DB_*, TGT_DB_*) > DB_* environment variables > defaults.
"""

import os
import re
from typing import Any, Mapping, Optional

import yaml

from .errors import ConfigurationError
from .models import ConnectionConfig

DEFAULT_BACKUP_DIR = './backups'

SOURCE_PREFIX = 'SRC_DB'
TARGET_PREFIX = 'TGT_DB'
GENERIC_PREFIX = 'DB'

# connection field -> accepted environment suffixes / YAML keys
ENV_SUFFIXES = {
    'host': ('HOST',),
    'port': ('PORT',),
    'username': ('USER',),
    'password': ('PASSWORD', 'PWD'),
    'database': ('NAME',),
    'ssl': ('SSL',),
}
YAML_KEYS = {
    'host': ('host',),
    'port': ('port',),
    'username': ('username', 'user'),
    'password': ('password',),
    'database': ('database', 'name'),
    'ssl': ('ssl',),
}

TRUE_VALUES = {'1', 'true', 'yes', 'on'}


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def parse_port(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid port: {value!r}")


def connection_from_env(prefix: str, env: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Collect the connection fields set under `<prefix>_*` environment variables."""
    env = os.environ if env is None else env
    values: dict[str, Any] = {}
    for field_name, suffixes in ENV_SUFFIXES.items():
        for suffix in suffixes:
            value = env.get(f"{prefix}_{suffix}")
            if value:
                values[field_name] = value
                break
    return values


def build_connection(*layers: Mapping[str, Any]) -> ConnectionConfig:
    """Merge connection layers, highest priority first, into a validated config."""
    merged: dict[str, Any] = {}
    for layer in reversed(layers):
        merged.update({k: v for k, v in layer.items() if v not in (None, '')})

    config = ConnectionConfig(
        host=str(merged.get('host', '')),
        username=str(merged.get('username', 'root')),
        database=str(merged.get('database', '')),
        password=str(merged.get('password', '')),
        port=parse_port(merged.get('port', ConnectionConfig.port)),
        ssl=parse_bool(merged.get('ssl', False)),
    )
    return config.validate()


class ConfigLoader:
    """Loads the optional YAML config file and resolves settings against the environment."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')

    def __init__(self, config_path: Optional[str] = None, env: Optional[Mapping[str, str]] = None):
        self.config_path = config_path
        self.env = os.environ if env is None else env
        self.config = self._load_config() if config_path else {}

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path, 'r') as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            raise ConfigurationError(f"Configuration file '{self.config_path}' must contain a mapping")
        return self._resolve_env_vars(config)

    def _resolve_env_vars(self, obj: Any) -> Any:
        """Recursively resolve environment variables in config."""
        if isinstance(obj, str):
            matches = self.ENV_VAR_PATTERN.findall(obj)
            for match in matches:
                env_value = self.env.get(match, '')
                obj = obj.replace(f'${{{match}}}', env_value)
            return obj
        elif isinstance(obj, dict):
            return {k: self._resolve_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._resolve_env_vars(item) for item in obj]
        return obj

    def _section_connection(self, section: str) -> dict[str, Any]:
        raw = self.config.get(section) or {}
        values: dict[str, Any] = {}
        for field_name, keys in YAML_KEYS.items():
            for key in keys:
                if key in raw:
                    values[field_name] = raw[key]
                    break
        return values

    def get_connection(
        self,
        role: str = 'database',
        overrides: Optional[Mapping[str, Any]] = None
    ) -> ConnectionConfig:
        """Resolve the connection for 'source', 'target' or the default 'database'.

        Raises ConfigurationError if host, username or database stay unset.
        """
        layers = [overrides or {}, self._section_connection(role)]
        if role == 'source':
            layers.append(connection_from_env(SOURCE_PREFIX, self.env))
        elif role == 'target':
            layers.append(connection_from_env(TARGET_PREFIX, self.env))
        layers.append(connection_from_env(GENERIC_PREFIX, self.env))

        try:
            return build_connection(*layers)
        except ConfigurationError as e:
            raise ConfigurationError(f"{role.capitalize()} connection: {e}") from e

    def get_backup_dir(self, override: Optional[str] = None) -> str:
        return (
            override
            or (self.config.get('backup') or {}).get('directory')
            or self.env.get('BACKUP_DIR')
            or DEFAULT_BACKUP_DIR
        )

    def get_compress(self, override: bool = False) -> bool:
        return override or parse_bool((self.config.get('backup') or {}).get('compress', False))

    def get_slack_webhook(self, override: Optional[str] = None) -> Optional[str]:
        return (
            override
            or (self.config.get('notifications') or {}).get('slack_webhook')
            or self.env.get('SLACK_WEBHOOK_URL')
            or None
        )

    def get_logging_settings(self) -> dict[str, Any]:
        """Get logging settings."""
        settings = dict(self.config.get('logging') or {})
        settings.setdefault('level', self.env.get('LOG_LEVEL', 'INFO'))
        if self.env.get('LOG_FILE'):
            settings.setdefault('file', self.env['LOG_FILE'])
        return settings


ENV_TEMPLATE = """# Database Configuration
DB_HOST=localhost
DB_PORT=3306
DB_USER=root
DB_PASSWORD=your_password
DB_NAME=your_database
DB_SSL=false

# Source / target databases for copy and the interactive menu
SRC_DB_HOST=localhost
SRC_DB_PORT=3306
SRC_DB_USER=root
SRC_DB_PASSWORD=your_password
SRC_DB_NAME=source_database

TGT_DB_HOST=localhost
TGT_DB_PORT=3306
TGT_DB_USER=root
TGT_DB_PASSWORD=your_password
TGT_DB_NAME=target_database

# Backup Configuration
BACKUP_DIR=./backups

# Slack Notifications (optional)
SLACK_WEBHOOK_URL=https://hooks.slack.com/services/YOUR/WEBHOOK/URL

# Logging
LOG_LEVEL=INFO
"""

YAML_TEMPLATE = {
    'database': {
        'host': 'localhost',
        'port': 3306,
        'user': 'root',
        'password': '${DB_PASSWORD}',
        'name': 'your_database',
        'ssl': False,
    },
    'source': {
        'host': 'localhost',
        'port': 3306,
        'user': 'root',
        'password': '${SRC_DB_PASSWORD}',
        'name': 'source_database',
    },
    'target': {
        'host': 'localhost',
        'port': 3306,
        'user': 'root',
        'password': '${TGT_DB_PASSWORD}',
        'name': 'target_database',
    },
    'backup': {
        'directory': './backups',
        'compress': True,
    },
    'notifications': {
        'slack_webhook': '${SLACK_WEBHOOK_URL}',
    },
    'logging': {
        'level': 'INFO',
        'file': './backups/backup.log',
    },
}


def render_template(fmt: str = 'env') -> str:
    """Configuration template in `env` or `yaml` format."""
    if fmt == 'env':
        return ENV_TEMPLATE
    if fmt == 'yaml':
        return yaml.safe_dump(YAML_TEMPLATE, sort_keys=False)
    raise ConfigurationError(f"Unknown template format: {fmt}")
