"""Forward message envelopes to a WeCom group robot webhook."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from src.models import RelayError
from src.webhook.models import MessageEnvelope

logger = logging.getLogger(__name__)


class TransportError(RelayError):
    """The upstream webhook could not be reached or answered unusably."""


class InvalidUpstreamResponseError(TransportError):
    """The upstream webhook answered with a body that is not JSON."""

    def __init__(self, body: str) -> None:
        self.body = body
        super().__init__(f"Invalid response from WeChat: {body}")


def encode_envelope(envelope: MessageEnvelope) -> bytes:
    return json.dumps(
        envelope.to_payload(), ensure_ascii=False, separators=(",", ":"),
    ).encode("utf-8")


class WeComForwarder:
    """One-shot POST of an envelope; no timeout, no retry."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def send(self, url: str, envelope: MessageEnvelope) -> Any:
        """Post ``envelope`` to ``url`` and return the decoded JSON reply.

        The reply is returned whatever the HTTP status; callers inspect
        ``errcode`` themselves.
        """
        body = encode_envelope(envelope)
        headers = {
            "Content-Type": "application/json",
            "Content-Length": str(len(body)),
        }

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
                resp = await client.post(url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

        try:
            return resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.debug("Non-JSON upstream reply (status %s)", resp.status_code)
            raise InvalidUpstreamResponseError(resp.text) from exc
