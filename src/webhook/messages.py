"""Build message envelopes from inbound request bodies."""

from __future__ import annotations

from typing import Any

from src.webhook.models import AlertPayload, MarkdownMessage, TextMessage
from src.webhook.timefmt import UNSPECIFIED, is_unset, number_text, to_display_time

INVALID_BODY = "Invalid request body. Must be a JSON object."
INVALID_CONTENT = "Content is required and must be a non-empty string."


class InvalidMessageError(Exception):
    """Raised when a send request body cannot be turned into a message."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


def _require_content(body: object) -> tuple[dict[str, Any], str]:
    if not isinstance(body, dict):
        raise InvalidMessageError(INVALID_BODY)
    content = body.get("content")
    if not isinstance(content, str) or not content.strip():
        raise InvalidMessageError(INVALID_CONTENT)
    return body, content.strip()


def _as_list(value: object) -> list[Any]:
    return value if isinstance(value, list) else []


def build_text_message(body: object) -> TextMessage:
    """Text envelope for ``/api/send``; mention lists default to empty."""
    fields, content = _require_content(body)
    return TextMessage(
        content=content,
        mentioned_list=_as_list(fields.get("mentioned_list")),
        mentioned_mobile_list=_as_list(fields.get("mentioned_mobile_list")),
    )


def build_markdown_message(body: object) -> MarkdownMessage:
    _, content = _require_content(body)
    return MarkdownMessage(content=content)


def render_field(value: object) -> str:
    """Text of a JSON value as it reads in a chat message.

    Booleans are lowercase, integral numbers drop the ``.0`` and objects
    collapse to ``[object Object]``, the way alert senders expect them.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return number_text(value)
    if isinstance(value, list):
        return ",".join(render_field(item) for item in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def _or_unspecified(value: object) -> str:
    return UNSPECIFIED if is_unset(value) else render_field(value)


def format_alert(alert: AlertPayload) -> str:
    return "\n".join([
        f"Search Name: {_or_unspecified(alert.search_name)}",
        f"Event Type: {_or_unspecified(alert.webhook_call_event)}",
        f"Search Type: {_or_unspecified(alert.search_type)}",
        f"Start Time: {to_display_time(alert.result_start)}",
        f"End Time: {to_display_time(alert.result_end)}",
    ])


def build_alert_text(body: object) -> str:
    """Alert text for the root intake.

    Objects keep only the five alert fields, strings pass through trimmed,
    anything else becomes an all-unspecified alert.
    """
    if isinstance(body, dict):
        return format_alert(AlertPayload.from_body(body))
    if isinstance(body, str):
        return body.strip()
    return format_alert(AlertPayload())


def build_alert_message(body: object) -> TextMessage:
    return TextMessage(content=build_alert_text(body))
