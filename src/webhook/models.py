"""Message envelopes sent to the WeCom group robot webhook."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Target:
    """A named forwarding destination."""

    name: str
    url: str


@dataclass
class TextMessage:
    content: str
    mentioned_list: list[Any] | None = None
    mentioned_mobile_list: list[Any] | None = None

    msgtype = "text"

    def to_payload(self) -> dict[str, Any]:
        text: dict[str, Any] = {"content": self.content}
        # Alert intake sends bare content; the API routes always carry both lists.
        if self.mentioned_list is not None:
            text["mentioned_list"] = self.mentioned_list
        if self.mentioned_mobile_list is not None:
            text["mentioned_mobile_list"] = self.mentioned_mobile_list
        return {"msgtype": self.msgtype, "text": text}


@dataclass
class MarkdownMessage:
    content: str

    msgtype = "markdown"

    def to_payload(self) -> dict[str, Any]:
        return {"msgtype": self.msgtype, "markdown": {"content": self.content}}


MessageEnvelope = TextMessage | MarkdownMessage


@dataclass
class AlertPayload:
    """Fields kept from an inbound alert; anything else is dropped."""

    search_name: Any = None
    webhook_call_event: Any = None
    search_type: Any = None
    result_start: Any = None
    result_end: Any = None

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> AlertPayload:
        return cls(
            search_name=body.get("searchName"),
            webhook_call_event=body.get("webhookCallEvent"),
            search_type=body.get("searchType"),
            result_start=body.get("resultStart"),
            result_end=body.get("resultEnd"),
        )
