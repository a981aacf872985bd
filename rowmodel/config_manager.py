"""Configuration for rowmodel deployments.

A YAML file describes which database to connect to, how deep eager loading
may go and how the ``rowmodel`` logger is set up::

    database:
      type: sqlite
      path: data/app.db
    persistence:
      max_eager_depth: 16
    logging:
      level: INFO
      log_dir: logs

Override files are deep-merged over the base file. Connection secrets and the
log level can also come from ``ROWMODEL_*`` environment variables, which win
over both files.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union
from copy import deepcopy
from jsonschema import validate, ValidationError

from .security import InputValidator, setup_secure_logging
from .database.config import DatabaseConfig, SUPPORTED_DATABASES
from .database.engine_factory import DatabaseFactory
from .database.base_manager import SQLAlchemyDatabase
from .core.relations import DEFAULT_MAX_EAGER_DEPTH
from .core.engine import PersistenceEngine
from .logging_config import setup_model_logging

logger = setup_secure_logging(__name__)

REDACTED = '***REDACTED***'
SENSITIVE_KEYS = ('secret', 'password', 'token', 'credential', 'connection_string')

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["database"],
    "properties": {
        "database": {
            "type": "object",
            "required": ["type"],
            "properties": {
                "type": {"type": "string", "enum": list(SUPPORTED_DATABASES)},
                "path": {"type": "string"},
                "connection_string": {"type": "string"},
                "host": {"type": "string"},
                "port": {"type": "integer", "minimum": 1},
                "user": {"type": "string"},
                "password": {"type": "string"},
                "name": {"type": "string"},
                "engine_args": {"type": "object"}
            }
        },
        "persistence": {
            "type": "object",
            "properties": {
                "max_eager_depth": {"type": "integer", "minimum": 1}
            }
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
                "log_dir": {"type": "string"}
            }
        }
    }
}


def read_yaml_mapping(path: Path) -> Dict[str, Any]:
    """Read a YAML file whose top level must be a mapping."""
    try:
        with path.open() as stream:
            data = yaml.safe_load(stream)
    except yaml.YAMLError as e:
        logger.error(f"Cannot parse {path}: {e}")
        raise

    if not isinstance(data, dict):
        raise ValueError(f"{path} must hold a mapping at the top level, not {type(data).__name__}")
    return data


def merge_settings(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``base`` with ``override`` merged in; nested sections merge key by key."""
    merged = deepcopy(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_settings(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def redact(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``settings`` with every secret-looking value replaced."""
    clean = {}
    for key, value in settings.items():
        if any(marker in key.lower() for marker in SENSITIVE_KEYS):
            clean[key] = REDACTED
        elif isinstance(value, dict):
            clean[key] = redact(value)
        else:
            clean[key] = deepcopy(value)
    return clean


class ConfigManager:
    """Settings for one rowmodel deployment, built from YAML files and the environment."""

    # Dotted setting path -> environment variable
    ENV_MAPPINGS = {
        'database.connection_string': 'ROWMODEL_DB_CONNECTION',
        'database.password': 'ROWMODEL_DB_PASSWORD',
        'logging.level': 'ROWMODEL_LOG_LEVEL',
    }

    def __init__(self, base_config_path: Union[str, Path]):
        """
        Args:
            base_config_path: YAML file with the base settings

        Raises:
            FileNotFoundError: If the file does not exist
        """
        self.base_config_path = Path(base_config_path)
        if not self.base_config_path.is_file():
            raise FileNotFoundError(f"No rowmodel config at {self.base_config_path}")

        self.base_config = read_yaml_mapping(self.base_config_path)
        self.merged_config = deepcopy(self.base_config)
        self._apply_environment()

    def merge_override(self, override_path: Union[str, Path]) -> None:
        """Merge another YAML file over the current settings."""
        path = Path(override_path)
        if not path.is_file():
            raise FileNotFoundError(f"No override config at {path}")

        self.merged_config = merge_settings(self.merged_config, read_yaml_mapping(path))
        # Environment values keep precedence over any file
        self._apply_environment()
        logger.info(f"Merged config override {path}")

    def _apply_environment(self) -> None:
        for setting, variable in self.ENV_MAPPINGS.items():
            value = os.environ.get(variable)
            if not value:
                continue
            *sections, leaf = setting.split('.')
            target = self.merged_config
            for section in sections:
                target = target.setdefault(section, {})
            target[leaf] = value
            logger.info(f"{setting} taken from ${variable}")

    def validate(self, schema: Optional[Dict[str, Any]] = None) -> None:
        """
        Check the merged settings against ``CONFIG_SCHEMA`` (or ``schema``).

        Raises:
            ValidationError: If a setting is missing or has the wrong shape
        """
        try:
            validate(self.merged_config, schema or CONFIG_SCHEMA)
        except ValidationError as e:
            location = '.'.join(str(part) for part in e.path) or '<root>'
            logger.error(f"Invalid rowmodel config at {location}: {e.message}")
            raise
        logger.debug("rowmodel config is valid")

    def get(self, path: str, default: Any = None) -> Any:
        """Look up a dotted setting such as ``'database.path'``."""
        node: Any = self.merged_config
        for part in path.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def get_config(self, redact_secrets: bool = True) -> Dict[str, Any]:
        """Copy of the merged settings, secrets masked unless ``redact_secrets`` is False."""
        if redact_secrets:
            return redact(self.merged_config)
        return deepcopy(self.merged_config)

    def database_settings(self) -> Dict[str, Any]:
        """Translate the ``database`` section into factory settings.

        Starts from ``DatabaseConfig.get_default_config`` for the configured
        type and overlays whatever the section sets.

        Returns:
            Dictionary with 'db_type' and 'connection_params' keys
        """
        section = self.merged_config.get('database', {})
        db_type = InputValidator.validate_config_value(
            'database.type', section.get('type', 'sqlite'),
            expected_type=str, allowed_values=DatabaseFactory.get_supported_databases()
        )

        settings = DatabaseConfig.get_default_config(db_type, section.get('path'))
        params = settings['connection_params']
        params['engine_args'].update(section.get('engine_args', {}))
        if section.get('connection_string'):
            params['connection_string'] = section['connection_string']

        if db_type == 'postgresql':
            for key in ('host', 'port', 'user', 'password'):
                if key in section:
                    params[key] = section[key]
            if 'name' in section:
                params['database'] = section['name']

        return settings

    def max_eager_depth(self) -> int:
        value = self.get('persistence.max_eager_depth', DEFAULT_MAX_EAGER_DEPTH)
        return InputValidator.validate_config_value(
            'persistence.max_eager_depth', value, expected_type=int
        )

    def create_database(self) -> SQLAlchemyDatabase:
        """Create the database capability described by the configuration."""
        return DatabaseFactory.create_from_config(self.database_settings())

    def create_engine(self, database: Optional[SQLAlchemyDatabase] = None) -> PersistenceEngine:
        """Create a persistence engine for the configured database.

        Args:
            database: Existing capability to use instead of creating one
        """
        return PersistenceEngine(database or self.create_database(),
                                 max_eager_depth=self.max_eager_depth())

    def setup_logging(self):
        """Configure the ``rowmodel`` logger from the ``logging`` section."""
        return setup_model_logging(self.merged_config)


def load_config(base_path: Union[str, Path],
                override_path: Optional[Union[str, Path]] = None,
                validate_schema: bool = True) -> ConfigManager:
    """
    Load settings from ``base_path``, merge ``override_path`` over them and validate.

    Returns:
        Ready ConfigManager
    """
    manager = ConfigManager(base_path)
    if override_path:
        manager.merge_override(override_path)
    if validate_schema:
        manager.validate()
    return manager
