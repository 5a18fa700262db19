"""Relay configuration, loaded once from the environment at startup."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.models import RelayError
from src.webhook.models import Target
from src.webhook.rate_limiter import DEFAULT_MAX_CALLS, DEFAULT_WINDOW_MS

DEFAULT_TARGET = "default"
DEFAULT_PORT = 3000
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ConfigError(RelayError):
    """Raised when the relay configuration is missing or malformed."""


class RelayConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    targets: dict[str, str]
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    rate_limit_max: int = Field(default=DEFAULT_MAX_CALLS, ge=1)
    rate_limit_window_ms: int = Field(default=DEFAULT_WINDOW_MS, ge=1)
    log_level: str = "INFO"
    event_log_path: str | None = None
    event_log_max_bytes: int = Field(default=10_485_760, ge=1)
    event_log_backup_count: int = Field(default=5, ge=1)

    @field_validator("targets")
    @classmethod
    def _require_default_target(cls, value: dict[str, str]) -> dict[str, str]:
        if DEFAULT_TARGET not in value:
            raise ValueError(f"a '{DEFAULT_TARGET}' webhook target is required")
        for name, url in value.items():
            if not url.startswith(("https://", "http://")):
                raise ValueError(f"webhook target '{name}' has no http(s) URL")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}")
        return level

    def get_target(self, name: str) -> Target | None:
        url = self.targets.get(name)
        if url is None:
            return None
        return Target(name=name, url=url)


def _read_targets_json(raw: str, origin: str) -> dict[str, str]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{origin} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
        raise ConfigError(f"{origin} must be a JSON object of name -> URL")
    return {str(k): v for k, v in data.items()}


def load_targets(env: Mapping[str, str]) -> dict[str, str]:
    """Merge the default URL, the targets file and the inline targets, in that order."""
    targets: dict[str, str] = {}
    default_url = env.get("WECOM_WEBHOOK_URL", "").strip()
    if default_url:
        targets[DEFAULT_TARGET] = default_url

    path = env.get("WECOM_WEBHOOKS_PATH")
    if path:
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"cannot read WECOM_WEBHOOKS_PATH {path}: {exc}") from exc
        targets.update(_read_targets_json(raw, path))

    inline = env.get("WECOM_WEBHOOKS")
    if inline:
        targets.update(_read_targets_json(inline, "WECOM_WEBHOOKS"))
    return targets


def load_config(env: Mapping[str, str] | None = None) -> RelayConfig:
    """Build a RelayConfig from environment variables."""
    if env is None:
        env = os.environ
    values: dict[str, object] = {"targets": load_targets(env)}
    for key, field_name in (
        ("PORT", "port"),
        ("RATE_LIMIT_MAX", "rate_limit_max"),
        ("RATE_LIMIT_WINDOW_MS", "rate_limit_window_ms"),
        ("LOG_LEVEL", "log_level"),
        ("RELAY_EVENT_LOG_PATH", "event_log_path"),
        ("RELAY_EVENT_LOG_MAX_BYTES", "event_log_max_bytes"),
        ("RELAY_EVENT_LOG_BACKUP_COUNT", "event_log_backup_count"),
    ):
        if env.get(key):
            values[field_name] = env[key]
    try:
        return RelayConfig(**values)  # type: ignore[arg-type]
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
