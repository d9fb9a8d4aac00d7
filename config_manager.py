"""
Centralized configuration manager to avoid multiple Config instances.
"""
from typing import Optional

from core.config import Config
from persistence_store import PersistenceStore, create_persistence_store

# Global config instance - loaded once
_config_instance: Optional[Config] = None


def get_config(config_file_path: Optional[str] = None) -> Config:
    """Get the global config instance, creating it only once."""
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_file_path) if config_file_path else Config()
    return _config_instance


def refresh_config(config_file_path: Optional[str] = None) -> Config:
    """Force a refresh of the global config instance."""
    global _config_instance
    _config_instance = None
    return get_config(config_file_path)


def get_persistence_store(config: Optional[Config] = None) -> Optional[PersistenceStore]:
    """Build a PersistenceStore from config, or None when persistence is disabled."""
    config = config or get_config()
    if not config.persistence.enabled:
        return None
    return create_persistence_store(config.persistence)
