"""Tests for relay configuration loading and validation."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from src.config import ConfigError, RelayConfig, load_config
from tests.conftest import DEFAULT_URL, OPS_URL


def test_defaults_from_single_webhook_url() -> None:
    config = load_config({"WECOM_WEBHOOK_URL": DEFAULT_URL})
    assert config.targets == {"default": DEFAULT_URL}
    assert config.port == 3000
    assert config.rate_limit_max == 50
    assert config.rate_limit_window_ms == 60_000
    assert config.event_log_path is None


def test_inline_targets_merged() -> None:
    config = load_config({
        "WECOM_WEBHOOK_URL": DEFAULT_URL,
        "WECOM_WEBHOOKS": json.dumps({"ops": OPS_URL}),
    })
    assert config.targets == {"default": DEFAULT_URL, "ops": OPS_URL}


def test_targets_file(tmp_path: Path) -> None:
    path = tmp_path / "webhooks.json"
    path.write_text(json.dumps({"default": DEFAULT_URL, "ops": OPS_URL}))
    config = load_config({"WECOM_WEBHOOKS_PATH": str(path)})
    assert config.get_target("ops") is not None
    assert config.get_target("ops").url == OPS_URL


def test_inline_targets_override_file(tmp_path: Path) -> None:
    path = tmp_path / "webhooks.json"
    path.write_text(json.dumps({"default": OPS_URL}))
    config = load_config({
        "WECOM_WEBHOOKS_PATH": str(path),
        "WECOM_WEBHOOKS": json.dumps({"default": DEFAULT_URL}),
    })
    assert config.targets["default"] == DEFAULT_URL


def test_numeric_settings_parsed() -> None:
    config = load_config({
        "WECOM_WEBHOOK_URL": DEFAULT_URL,
        "PORT": "8080",
        "RATE_LIMIT_MAX": "10",
        "RATE_LIMIT_WINDOW_MS": "1000",
        "RELAY_EVENT_LOG_PATH": "/tmp/relay.jsonl",
    })
    assert config.port == 8080
    assert config.rate_limit_max == 10
    assert config.rate_limit_window_ms == 1000
    assert config.event_log_path == "/tmp/relay.jsonl"


def test_missing_default_target_rejected() -> None:
    with pytest.raises(ConfigError, match="default"):
        load_config({"WECOM_WEBHOOKS": json.dumps({"ops": OPS_URL})})


def test_empty_environment_rejected() -> None:
    with pytest.raises(ConfigError):
        load_config({})


def test_bad_targets_json_rejected() -> None:
    with pytest.raises(ConfigError, match="WECOM_WEBHOOKS"):
        load_config({"WECOM_WEBHOOK_URL": DEFAULT_URL, "WECOM_WEBHOOKS": "{not json"})


def test_non_string_url_rejected() -> None:
    with pytest.raises(ConfigError):
        load_config({"WECOM_WEBHOOK_URL": DEFAULT_URL, "WECOM_WEBHOOKS": '{"ops": 1}'})


def test_unreadable_targets_file_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="WECOM_WEBHOOKS_PATH"):
        load_config({"WECOM_WEBHOOKS_PATH": str(tmp_path / "missing.json")})


def test_invalid_port_rejected() -> None:
    with pytest.raises(ConfigError):
        load_config({"WECOM_WEBHOOK_URL": DEFAULT_URL, "PORT": "not-a-port"})


def test_unknown_target_lookup() -> None:
    config = RelayConfig(targets={"default": DEFAULT_URL})
    assert config.get_target("missing") is None
    target = config.get_target("default")
    assert target is not None
    assert target.name == "default"


def test_log_level_normalized() -> None:
    config = load_config({"WECOM_WEBHOOK_URL": DEFAULT_URL, "LOG_LEVEL": " debug "})
    assert config.log_level == "DEBUG"


def test_unknown_log_level_rejected() -> None:
    with pytest.raises(ConfigError, match="log_level"):
        load_config({"WECOM_WEBHOOK_URL": DEFAULT_URL, "LOG_LEVEL": "verbose"})
