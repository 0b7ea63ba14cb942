"""Tests for project configuration"""

import json

import pytest

from beads_sync.config import CONFIG_FILE, SyncConfig, get_project_config, save_project_config
from beads_sync.errors import ValidationFailure


def test_defaults(temp_dir):
    config = get_project_config()
    assert config.api_url == "http://localhost:3001/api"
    assert config.reconnect_delay == 5.0
    assert config.id_prefix == "BD-"
    assert config.push_url() == "ws://localhost:3001/ws"


def test_push_url_derivation():
    assert SyncConfig(api_url="https://tracker.example.com/api/").push_url() == "wss://tracker.example.com/ws"
    assert SyncConfig(api_url="http://host:8000").push_url() == "ws://host:8000/ws"
    assert SyncConfig(ws_url="ws://elsewhere/push").push_url() == "ws://elsewhere/push"


def test_save_and_load(temp_dir):
    save_project_config(SyncConfig(api_url="http://example:9000/api", id_prefix="PRJ-"))
    assert json.loads(CONFIG_FILE.read_text())["id_prefix"] == "PRJ-"

    config = get_project_config()
    assert config.api_url == "http://example:9000/api"
    assert config.id_prefix == "PRJ-"


def test_environment_overrides_file(temp_dir, monkeypatch):
    save_project_config(SyncConfig(reconnect_delay=2.0))
    monkeypatch.setenv("BEADS_SYNC_RECONNECT_DELAY", "0.5")
    monkeypatch.setenv("BEADS_SYNC_API_URL", "http://env:1/api")

    config = get_project_config()
    assert config.reconnect_delay == 0.5
    assert config.api_url == "http://env:1/api"


def test_unreadable_file_falls_back_to_defaults(temp_dir):
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text("{not json")
    assert get_project_config().api_url == "http://localhost:3001/api"


def test_invalid_values_rejected(temp_dir, monkeypatch):
    monkeypatch.setenv("BEADS_SYNC_RECONNECT_DELAY", "-1")
    with pytest.raises(ValidationFailure):
        get_project_config()
