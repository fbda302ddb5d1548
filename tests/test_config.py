"""Settings loading tests."""

import json

import pytest
from pydantic import ValidationError

from schedule_agent.config import Settings, load_settings, save_settings


def test_defaults_without_file(tmp_path):
    settings = load_settings(tmp_path / "missing.json", environ={})
    assert settings == Settings()
    assert settings.batch_size == 10
    assert settings.max_chain_depth == 5


def test_file_then_environment(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"batch_size": 4, "base_url": "https://file.example"}))
    settings = load_settings(path, environ={
        "SCHEDULE_AGENT_BASE_URL": "https://env.example",
        "SCHEDULE_AGENT_POLL_INTERVAL_S": "0.5",
        "SCHEDULE_AGENT_ACCESS_TOKEN": "",
    })
    assert settings.batch_size == 4
    assert settings.base_url == "https://env.example"
    assert settings.poll_interval_s == 0.5
    assert settings.access_token is None


def test_invalid_values_raise(tmp_path):
    with pytest.raises(ValidationError):
        load_settings(tmp_path / "missing.json", environ={"SCHEDULE_AGENT_BATCH_SIZE": "0"})


def test_corrupt_file_is_ignored(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert load_settings(path, environ={}) == Settings()


def test_save_round_trip(tmp_path):
    path = tmp_path / "nested" / "config.json"
    save_settings(Settings(batch_size=3, access_token="secret"), path)
    assert load_settings(path, environ={}).batch_size == 3
    assert "secret" in path.read_text()
