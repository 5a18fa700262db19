"""FastAPI relay application."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from src.audit.logger import RelayEventLog
from src.config import DEFAULT_TARGET, RelayConfig, load_config
from src.models import RelayEvent, RelayResult, RelayRoute
from src.webhook.forwarder import TransportError, WeComForwarder
from src.webhook.messages import (
    InvalidMessageError,
    build_alert_message,
    build_markdown_message,
    build_text_message,
)
from src.webhook.models import MessageEnvelope
from src.webhook.rate_limiter import WindowRateLimiter

logger = logging.getLogger(__name__)

USAGE_TEXT = "请调用 POST 请求来发送消息"
WEBHOOK_NOT_FOUND = "Webhook not found"
RATE_LIMITED = "Rate limit exceeded. Please try again later."
ALERT_SENT = "消息已发送"
ALERT_FAILED = "消息发送过程中出现错误，但已记录"


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    return create_app(load_config())


def upstream_succeeded(result: Any) -> bool:
    """True when a WeCom reply carries ``errcode`` 0."""
    errcode = result.get("errcode") if isinstance(result, dict) else None
    if isinstance(errcode, bool) or not isinstance(errcode, (int, float)):
        return False
    return errcode == 0


def _errcode(result: Any) -> int | None:
    errcode = result.get("errcode") if isinstance(result, dict) else None
    if isinstance(errcode, int) and not isinstance(errcode, bool):
        return errcode
    return None


async def _read_json_body(request: Request) -> Any:
    """Parsed JSON body, or None when the body is empty or not JSON."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


async def _read_alert_body(request: Request) -> Any:
    """Alert bodies may be JSON or plain text; text is returned as a str."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type == "application/json" or content_type.endswith("+json"):
        return await _read_json_body(request)
    raw = await request.body()
    if not raw.strip():
        return None
    return raw.decode("utf-8", errors="replace")


def create_app(
    config: RelayConfig,
    forwarder: WeComForwarder | None = None,
    rate_limiter: WindowRateLimiter | None = None,
    event_log: RelayEventLog | None = None,
) -> FastAPI:
    """Create the relay app around one rate limiter and one forwarder."""
    app = FastAPI(docs_url=None, redoc_url=None)
    forwarder = forwarder or WeComForwarder()
    limiter = rate_limiter or WindowRateLimiter(
        max_calls=config.rate_limit_max,
        window_ms=config.rate_limit_window_ms,
    )
    if event_log is None:
        event_log = RelayEventLog.from_config(config)
    app.state.config = config
    app.state.rate_limiter = limiter

    def record(
        route: RelayRoute,
        target: str,
        result: RelayResult,
        status_code: int,
        upstream: Any = None,
        error: str | None = None,
    ) -> None:
        if event_log is None:
            return
        event = RelayEvent(
            route=route,
            target=target,
            result=result,
            status_code=status_code,
            upstream_errcode=_errcode(upstream),
            error=error,
        )
        try:
            event_log.record(event)
        except OSError:
            # The reply to the caller must not depend on the event log.
            logger.exception("Failed to write relay event to %s", event_log.log_path)

    async def relay_send(
        route: RelayRoute,
        target_name: str,
        request: Request,
        build: Callable[[object], MessageEnvelope],
    ) -> Response:
        try:
            target = config.get_target(target_name)
            if target is None:
                record(route, target_name, RelayResult.NOT_FOUND, 404)
                return JSONResponse({"error": WEBHOOK_NOT_FOUND}, status_code=404)

            if not limiter.admit(target.name):
                logger.warning("Rate limit hit for webhook %s", target.name)
                record(route, target.name, RelayResult.RATE_LIMITED, 429)
                return JSONResponse({"error": RATE_LIMITED}, status_code=429)

            try:
                envelope = build(await _read_json_body(request))
            except InvalidMessageError as exc:
                record(route, target.name, RelayResult.INVALID_INPUT, 400, error=exc.reason)
                return JSONResponse({"error": exc.reason}, status_code=400)

            result = await forwarder.send(target.url, envelope)
            if result is None:
                raise TransportError("Empty reply from WeChat: null")

            if not upstream_succeeded(result):
                logger.error("WeChat API error (%s): %s", target.name, result)
                record(route, target.name, RelayResult.UPSTREAM_REJECTED, 400, upstream=result)
                return JSONResponse(result, status_code=400)

            record(route, target.name, RelayResult.SENT, 200, upstream=result)
            return JSONResponse(result)
        except Exception as exc:
            logger.exception("Server error relaying to %s", target_name)
            kind = (
                RelayResult.TRANSPORT_ERROR
                if isinstance(exc, TransportError)
                else RelayResult.INTERNAL_ERROR
            )
            record(route, target_name, kind, 500, error=str(exc))
            return JSONResponse(
                {"error": "Internal server error", "details": str(exc)},
                status_code=500,
            )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/")
    async def usage() -> PlainTextResponse:
        return PlainTextResponse(USAGE_TEXT)

    @app.post("/")
    async def alert_intake(request: Request) -> Response:
        # Alert sources retry on any non-2xx status, so failures are reported
        # in the body. The rate limit is the one exception.
        try:
            if not limiter.admit(DEFAULT_TARGET):
                logger.warning("Rate limit hit for alert intake")
                record(RelayRoute.ALERT, DEFAULT_TARGET, RelayResult.RATE_LIMITED, 429)
                return JSONResponse({"error": RATE_LIMITED}, status_code=429)

            target = config.get_target(DEFAULT_TARGET)
            if target is None:
                raise LookupError(f"no '{DEFAULT_TARGET}' webhook configured")

            message = build_alert_message(await _read_alert_body(request))
            result = await forwarder.send(target.url, message)
            logger.info("WeChat API response: %s", result)

            outcome = (
                RelayResult.SENT if upstream_succeeded(result) else RelayResult.UPSTREAM_REJECTED
            )
            record(RelayRoute.ALERT, DEFAULT_TARGET, outcome, 200, upstream=result)
            return JSONResponse({
                "status": "ok",
                "message": ALERT_SENT,
                "wechatResult": result,
            })
        except Exception as exc:
            logger.exception("Server error relaying alert")
            kind = (
                RelayResult.TRANSPORT_ERROR
                if isinstance(exc, TransportError)
                else RelayResult.INTERNAL_ERROR
            )
            record(RelayRoute.ALERT, DEFAULT_TARGET, kind, 200, error=str(exc))
            return JSONResponse({
                "status": "ok",
                "message": ALERT_FAILED,
                "error": str(exc),
            })

    # Markdown routes first: /api/send/{target} would otherwise claim "markdown".
    @app.post("/api/send/markdown")
    async def send_markdown_default(request: Request) -> Response:
        return await relay_send(RelayRoute.MARKDOWN, DEFAULT_TARGET, request, build_markdown_message)

    @app.post("/api/send/markdown/{target}")
    async def send_markdown(request: Request, target: str) -> Response:
        return await relay_send(RelayRoute.MARKDOWN, target, request, build_markdown_message)

    @app.post("/api/send")
    async def send_text_default(request: Request) -> Response:
        return await relay_send(RelayRoute.TEXT, DEFAULT_TARGET, request, build_text_message)

    @app.post("/api/send/{target}")
    async def send_text(request: Request, target: str) -> Response:
        return await relay_send(RelayRoute.TEXT, target, request, build_text_message)

    return app
