"""
Configuration management for Table Search State.

This module provides a split configuration system that separates table
pagination defaults from search persistence settings, backed by a TOML file.
"""

import logging
from dataclasses import dataclass, field
from typing import List

import toml

from .exceptions import ConfigurationError


VALID_BACKENDS = ['memory', 'redis', 'database']


@dataclass
class TableConfig:
    """Configuration for pagination defaults of a table."""

    # Standard page size tiers offered next to the total item count
    page_size_tiers: List[int] = field(default_factory=lambda: [10, 25, 50, 100])
    min_page_size: int = 10
    default_current_page: int = 1
    default_page_size: int = 10
    show_more_increment: int = 10

    def validate(self) -> List[str]:
        """Validate the table configuration and return any errors."""
        errors = []

        if not self.page_size_tiers:
            errors.append("page_size_tiers cannot be empty")
        elif any(size <= 0 for size in self.page_size_tiers):
            errors.append("page_size_tiers must only contain positive sizes")

        if self.min_page_size <= 0:
            errors.append("min_page_size must be positive")

        if self.default_current_page < 1:
            errors.append("default_current_page must be at least 1")

        if self.default_page_size <= 0:
            errors.append("default_page_size must be positive")

        if self.show_more_increment <= 0:
            errors.append("show_more_increment must be positive")

        return errors


@dataclass
class PersistenceConfig:
    """Configuration for search state persistence."""

    enabled: bool = True
    backend: str = 'memory'  # 'memory', 'redis', 'database'
    ttl_default: int = 0  # seconds, 0 disables expiry
    key_prefix: str = 'searchComponent'
    enable_user_isolation: bool = False

    # Backend-specific settings
    redis_url: str = 'redis://localhost:6379/0'
    database_url: str = 'sqlite:///search_state.db'

    def validate(self) -> List[str]:
        """Validate the persistence configuration and return any errors."""
        errors = []

        if self.backend not in VALID_BACKENDS:
            errors.append(f"backend must be one of {VALID_BACKENDS}")

        if self.ttl_default < 0:
            errors.append("ttl_default cannot be negative")

        if not self.key_prefix:
            errors.append("key_prefix cannot be empty")

        return errors


@dataclass
class Config:
    """Main configuration class that combines all configuration sections."""

    config_file_path: str = "config.toml"

    table: TableConfig = field(default_factory=TableConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)

    def __post_init__(self):
        """Load configuration when an instance is created."""
        self.load_config()

    def save_config(self) -> None:
        """Save current configuration to TOML file."""
        config_data = {
            'table': {
                'page_size_tiers': list(self.table.page_size_tiers),
                'min_page_size': self.table.min_page_size,
                'default_current_page': self.table.default_current_page,
                'default_page_size': self.table.default_page_size,
                'show_more_increment': self.table.show_more_increment,
            },
            'persistence': {
                'enabled': self.persistence.enabled,
                'backend': self.persistence.backend,
                'ttl_default': self.persistence.ttl_default,
                'key_prefix': self.persistence.key_prefix,
                'enable_user_isolation': self.persistence.enable_user_isolation,
                'redis_url': self.persistence.redis_url,
                'database_url': self.persistence.database_url,
            }
        }

        try:
            with open(self.config_file_path, 'w') as f:
                toml.dump(config_data, f)
            logging.info(f"Configuration saved to {self.config_file_path}")
        except OSError as e:
            error_msg = f"Error saving configuration: {e}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg, config_file=self.config_file_path)

    def load_config(self) -> None:
        """Load configuration from TOML file, writing defaults if it is missing."""
        try:
            with open(self.config_file_path) as f:
                config_data = toml.load(f)
        except FileNotFoundError:
            logging.info(f"{self.config_file_path} not found. Creating with default values.")
            self.save_config()
            return
        except toml.TomlDecodeError as e:
            error_msg = f"Error decoding {self.config_file_path}: {e}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg, config_file=self.config_file_path)

        if 'table' in config_data:
            table_config = config_data['table']
            self.table.page_size_tiers = list(table_config.get('page_size_tiers', self.table.page_size_tiers))
            self.table.min_page_size = table_config.get('min_page_size', self.table.min_page_size)
            self.table.default_current_page = table_config.get('default_current_page', self.table.default_current_page)
            self.table.default_page_size = table_config.get('default_page_size', self.table.default_page_size)
            self.table.show_more_increment = table_config.get('show_more_increment', self.table.show_more_increment)

        if 'persistence' in config_data:
            persistence_config = config_data['persistence']
            self.persistence.enabled = persistence_config.get('enabled', self.persistence.enabled)
            self.persistence.backend = persistence_config.get('backend', self.persistence.backend)
            self.persistence.ttl_default = persistence_config.get('ttl_default', self.persistence.ttl_default)
            self.persistence.key_prefix = persistence_config.get('key_prefix', self.persistence.key_prefix)
            self.persistence.enable_user_isolation = persistence_config.get(
                'enable_user_isolation', self.persistence.enable_user_isolation
            )
            self.persistence.redis_url = persistence_config.get('redis_url', self.persistence.redis_url)
            self.persistence.database_url = persistence_config.get('database_url', self.persistence.database_url)

        errors = self.validate()
        if errors:
            error_msg = f"Invalid configuration in {self.config_file_path}: {'; '.join(errors)}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg, config_file=self.config_file_path)

        logging.info(f"Configuration loaded from {self.config_file_path}")

    def validate(self) -> List[str]:
        """Validate all configuration sections and return any errors."""
        errors = []
        errors.extend(self.table.validate())
        errors.extend(self.persistence.validate())
        return errors
