"""Tests for the WeCom webhook forwarder."""

from __future__ import annotations

import json

import httpx
import pytest

from src.webhook.forwarder import (
    InvalidUpstreamResponseError,
    TransportError,
    WeComForwarder,
    encode_envelope,
)
from src.webhook.models import MarkdownMessage, TextMessage

URL = "https://qyapi.weixin.qq.com/cgi-bin/webhook/send?key=test"


def _forwarder(handler) -> tuple[WeComForwarder, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def _capture(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return WeComForwarder(transport=httpx.MockTransport(_capture)), seen


class TestEncodeEnvelope:

    def test_non_ascii_kept_as_utf8(self) -> None:
        body = encode_envelope(TextMessage(content="告警"))
        assert "告警".encode() in body
        assert json.loads(body) == {"msgtype": "text", "text": {"content": "告警"}}


class TestWeComForwarder:

    @pytest.mark.asyncio
    async def test_posts_json_with_exact_length(self) -> None:
        forwarder, seen = _forwarder(
            lambda req: httpx.Response(200, json={"errcode": 0, "errmsg": "ok"}),
        )
        result = await forwarder.send(URL, MarkdownMessage(content="# 标题"))

        assert result == {"errcode": 0, "errmsg": "ok"}
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == URL
        assert request.headers["content-type"] == "application/json"
        assert int(request.headers["content-length"]) == len(request.content)
        assert json.loads(request.content) == {
            "msgtype": "markdown",
            "markdown": {"content": "# 标题"},
        }

    @pytest.mark.asyncio
    async def test_error_status_still_returns_body(self) -> None:
        forwarder, _ = _forwarder(
            lambda req: httpx.Response(500, json={"errcode": -1, "errmsg": "system busy"}),
        )
        result = await forwarder.send(URL, TextMessage(content="hi"))
        assert result == {"errcode": -1, "errmsg": "system busy"}

    @pytest.mark.asyncio
    async def test_non_json_reply_raises_with_raw_body(self) -> None:
        forwarder, _ = _forwarder(
            lambda req: httpx.Response(502, text="<html>Bad Gateway</html>"),
        )
        with pytest.raises(InvalidUpstreamResponseError) as exc_info:
            await forwarder.send(URL, TextMessage(content="hi"))
        assert exc_info.value.body == "<html>Bad Gateway</html>"
        assert "<html>Bad Gateway</html>" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_network_error_raises_transport_error(self) -> None:
        def _fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        forwarder, _ = _forwarder(_fail)
        with pytest.raises(TransportError, match="connection refused"):
            await forwarder.send(URL, TextMessage(content="hi"))
