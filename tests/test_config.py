import os
import sys
from pathlib import Path

import pytest
import toml

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config_manager
from config_manager import get_config, get_persistence_store, refresh_config
from core.config import Config, PersistenceConfig, TableConfig
from core.exceptions import ConfigurationError
from persistence_store import PersistenceStore


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "test_config.toml")


@pytest.fixture(autouse=True)
def reset_config_singleton(monkeypatch):
    """Each test starts without a cached global Config."""
    monkeypatch.setattr(config_manager, "_config_instance", None)


# --- Test Cases for Config.load_config() ---

def test_load_config_exists_and_valid(config_path):
    custom_values = {
        "table": {
            "page_size_tiers": [20, 40, 80],
            "min_page_size": 20,
            "default_page_size": 40,
        },
        "persistence": {
            "enabled": False,
            "backend": "redis",
            "ttl_default": 0,
            "key_prefix": "tables",
            "redis_url": "redis://cache:6379/2",
        },
    }
    with open(config_path, "w") as f:
        toml.dump(custom_values, f)

    config = Config(config_path)

    assert config.table.page_size_tiers == [20, 40, 80]
    assert config.table.min_page_size == 20
    assert config.table.default_page_size == 40
    assert config.table.default_current_page == 1  # untouched default
    assert config.persistence.enabled is False
    assert config.persistence.backend == "redis"
    assert config.persistence.ttl_default == 0
    assert config.persistence.key_prefix == "tables"
    assert config.persistence.redis_url == "redis://cache:6379/2"


def test_load_config_not_exists_creates_default(config_path):
    assert not Path(config_path).exists()

    config = Config(config_path)

    assert Path(config_path).exists()
    saved = toml.load(config_path)
    assert saved["table"]["page_size_tiers"] == [10, 25, 50, 100]
    assert saved["persistence"]["backend"] == "memory"
    assert config.table == TableConfig()
    assert config.persistence == PersistenceConfig()


def test_load_config_invalid_toml(config_path):
    with open(config_path, "w") as f:
        f.write("[table\npage_size_tiers = ")

    with pytest.raises(ConfigurationError) as exc_info:
        Config(config_path)

    assert exc_info.value.context["config_file"] == config_path


def test_load_config_invalid_values(config_path):
    with open(config_path, "w") as f:
        toml.dump({"persistence": {"backend": "floppy"}, "table": {"min_page_size": 0}}, f)

    with pytest.raises(ConfigurationError) as exc_info:
        Config(config_path)

    assert "backend must be one of" in str(exc_info.value)
    assert "min_page_size must be positive" in str(exc_info.value)


def test_save_and_reload(config_path):
    config = Config(config_path)
    config.table.show_more_increment = 30
    config.persistence.enable_user_isolation = True
    config.save_config()

    reloaded = Config(config_path)
    assert reloaded.table.show_more_increment == 30
    assert reloaded.persistence.enable_user_isolation is True


# --- Section validation ---

def test_table_config_validation():
    assert TableConfig().validate() == []

    errors = TableConfig(page_size_tiers=[], default_current_page=0, show_more_increment=-1).validate()
    assert "page_size_tiers cannot be empty" in errors
    assert "default_current_page must be at least 1" in errors
    assert "show_more_increment must be positive" in errors

    assert TableConfig(page_size_tiers=[10, 0]).validate() == [
        "page_size_tiers must only contain positive sizes"
    ]


def test_persistence_config_validation():
    assert PersistenceConfig().validate() == []

    errors = PersistenceConfig(backend="tape", ttl_default=-5, key_prefix="").validate()
    assert len(errors) == 3


# --- config_manager ---

def test_get_config_is_cached(config_path):
    first = get_config(config_path)
    assert get_config() is first

    refreshed = refresh_config(config_path)
    assert refreshed is not first
    assert get_config() is refreshed


def test_get_persistence_store(config_path):
    config = Config(config_path)
    store = get_persistence_store(config)
    try:
        assert isinstance(store, PersistenceStore)
        assert store.config.key_prefix == config.persistence.key_prefix
    finally:
        store.close()

    config.persistence.enabled = False
    assert get_persistence_store(config) is None
