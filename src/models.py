"""Shared Pydantic data models for wecom-relay."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RelayError(Exception):
    """Base class for errors raised by the relay."""


# --- Enums ---


class RelayRoute(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    ALERT = "alert"


class RelayResult(str, Enum):
    SENT = "sent"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    INVALID_INPUT = "invalid_input"
    UPSTREAM_REJECTED = "upstream_rejected"
    TRANSPORT_ERROR = "transport_error"
    INTERNAL_ERROR = "internal_error"


# --- Event log models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class RelayEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(default_factory=_now_iso)
    route: RelayRoute
    target: str
    result: RelayResult
    status_code: int
    upstream_errcode: int | None = None
    error: str | None = None
