"""Shared test fixtures for wecom-relay."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.config import RelayConfig
from src.models import RelayEvent, RelayResult, RelayRoute
from src.webhook.forwarder import WeComForwarder

DEFAULT_URL = "https://qyapi.weixin.qq.com/cgi-bin/webhook/send?key=default-key"
OPS_URL = "https://qyapi.weixin.qq.com/cgi-bin/webhook/send?key=ops-key"

WECOM_OK = {"errcode": 0, "errmsg": "ok"}


def make_config(**kwargs: Any) -> RelayConfig:
    """Factory for RelayConfig with a default and an ops target."""
    defaults: dict[str, Any] = {
        "targets": {"default": DEFAULT_URL, "ops": OPS_URL},
    }
    defaults.update(kwargs)
    return RelayConfig(**defaults)


def make_relay_event(**kwargs: Any) -> RelayEvent:
    """Factory for RelayEvent with sensible defaults."""
    defaults: dict[str, Any] = {
        "route": RelayRoute.TEXT,
        "target": "default",
        "result": RelayResult.SENT,
        "status_code": 200,
        "upstream_errcode": 0,
    }
    defaults.update(kwargs)
    return RelayEvent(**defaults)


@pytest.fixture
def relay_config() -> RelayConfig:
    return make_config()


@pytest.fixture
def mock_forwarder() -> AsyncMock:
    forwarder = AsyncMock(spec=WeComForwarder)
    forwarder.send.return_value = dict(WECOM_OK)
    return forwarder
