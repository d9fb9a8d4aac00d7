"""
Tests for the search-state command line tool.
"""

import json
import logging
import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config_manager
from core.config import Config
from persistence_store import create_persistence_store
from search_cli import main


SNAPSHOT = {
    'filters': {'status': {'selected_options': [{'code': 'OPEN'}]}},
    'keywords': 'pump',
    'pagination_data': {'current_page': 2, 'page_size': 25},
}


@pytest.fixture(autouse=True)
def isolate_global_state(monkeypatch):
    monkeypatch.setattr(config_manager, "_config_instance", None)
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_path(tmp_path):
    path = str(tmp_path / 'config.toml')
    config = Config(path)
    config.persistence.backend = 'database'
    config.persistence.database_url = f"sqlite:///{tmp_path / 'search.db'}"
    config.persistence.ttl_default = 0
    config.save_config()

    store = create_persistence_store(config.persistence)
    store.put('orders', SNAPSHOT)
    store.close()
    return path


def test_show(config_path, capsys):
    assert main(['--config', config_path, 'show', 'orders']) == 0
    assert json.loads(capsys.readouterr().out) == SNAPSHOT


def test_show_missing(config_path, capsys):
    assert main(['--config', config_path, 'show', 'invoices']) == 1
    assert "No snapshot stored for invoices" in capsys.readouterr().err


def test_clear(config_path, capsys):
    assert main(['--config', config_path, 'clear', 'orders']) == 0
    assert "Cleared orders" in capsys.readouterr().out

    assert main(['--config', config_path, 'show', 'orders']) == 1
    assert main(['--config', config_path, 'clear', 'orders']) == 1


def test_stats(config_path, capsys):
    assert main(['--config', config_path, 'stats']) == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats['backend_type'] == 'database'
    assert stats['stats_available'] is False


def test_persistence_disabled(tmp_path, capsys):
    path = str(tmp_path / 'config.toml')
    config = Config(path)
    config.persistence.enabled = False
    config.save_config()

    assert main(['--config', path, 'show', 'orders']) == 1
    assert "Persistence is disabled" in capsys.readouterr().err


def test_invalid_config(tmp_path, capsys):
    path = tmp_path / 'config.toml'
    path.write_text("[persistence\n")

    assert main(['--config', str(path), 'stats']) == 2
    assert "Error:" in capsys.readouterr().err
