"""Telegram Bot API notification sink."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from futures_core.config.schema import TelegramConfig
from futures_core.notify.base import (
    BOT_STATUS,
    ERROR,
    ORDER_CANCELLED,
    ORDER_PLACED,
    POSITION_CLOSED,
    SIGNAL,
    LogNotifier,
    NotificationSink,
)

log = structlog.get_logger("telegram")

TELEGRAM_API_URL = "https://api.telegram.org"


def _price(value: Any) -> str:
    return f"${value:.4f}" if isinstance(value, (int, float)) else "N/A"


def format_message(event: str, payload: dict[str, Any]) -> str:
    """Render an event as a short HTML message."""
    symbol = payload.get("symbol", "")
    if event == SIGNAL:
        return (
            "<b>Signal Detected</b>\n\n"
            f"Symbol: <code>{symbol}</code>\n"
            f"Signal: <b>{payload.get('direction')}</b>\n"
            f"Confidence: {payload.get('confidence', 0) * 100:.1f}%\n"
            f"Price: {_price(payload.get('price'))}\n"
            f"Reason: {payload.get('reason') or 'N/A'}"
        )
    if event == ORDER_PLACED:
        return (
            "<b>Order Placed</b>\n\n"
            f"Symbol: <code>{symbol}</code>\n"
            f"Side: <b>{payload.get('side')}</b>\n"
            f"Type: {payload.get('type')}\n"
            f"Price: {_price(payload.get('price'))}\n"
            f"Volume: {payload.get('vol')}\n"
            f"Leverage: {payload.get('leverage')}x\n"
            f"Order ID: <code>{payload.get('order_id') or 'N/A'}</code>"
        )
    if event == ORDER_CANCELLED:
        return (
            "<b>Order Cancelled</b>\n\n"
            f"Symbol: <code>{symbol}</code>\n"
            f"Order ID: <code>{payload.get('order_id') or 'N/A'}</code>\n"
            f"Reason: {payload.get('reason') or 'N/A'}"
        )
    if event == POSITION_CLOSED:
        pnl = payload.get("pnl") or 0.0
        return (
            "<b>Position Closed</b>\n\n"
            f"Symbol: <code>{symbol}</code>\n"
            f"Side: <b>{payload.get('side')}</b>\n"
            f"Entry: {_price(payload.get('entry_price'))}\n"
            f"Exit: {_price(payload.get('exit_price'))}\n"
            f"PnL: ${pnl:.2f} ({payload.get('roi') or 0.0:.2f}%)\n"
            f"Reason: <b>{payload.get('reason', '')}</b>"
        )
    if event == ERROR:
        return (
            "<b>Error Occurred</b>\n\n"
            f"Context: {payload.get('context') or 'Unknown'}\n"
            f"Error: <code>{payload.get('error')}</code>"
        )
    if event == BOT_STATUS:
        return f"<b>Bot Status: {str(payload.get('status', '')).upper()}</b>\n\n{payload.get('message', '')}"
    return f"<b>{event}</b>\n\n{payload}"


class TelegramNotifier(NotificationSink):
    """Posts events to a Telegram chat. Disabled without token and chat id.

    Delivery failures are logged, never raised.
    """

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        base_url: str = TELEGRAM_API_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.base_url = base_url.rstrip("/")
        self.enabled = bool(bot_token and chat_id)
        self._http = client

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=10.0)
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()

    async def send_message(self, text: str, parse_mode: str = "HTML") -> None:
        if not self.enabled:
            log.debug("telegram_disabled", text=text[:50])
            return
        http = await self._get_http()
        try:
            resp = await http.post(
                f"{self.base_url}/bot{self.bot_token}/sendMessage",
                json={
                    "chat_id": self.chat_id,
                    "text": text,
                    "parse_mode": parse_mode,
                    "disable_web_page_preview": True,
                },
            )
        except httpx.HTTPError as exc:
            log.warning("telegram_send_error", error=str(exc))
            return
        if resp.is_error:
            log.warning("telegram_send_failed", status=resp.status_code, body=resp.text[:200])

    async def notify(self, event: str, payload: dict[str, Any]) -> None:
        await self.send_message(format_message(event, payload))


def build_notifier(config: TelegramConfig) -> NotificationSink:
    """TelegramNotifier when token and chat id are set, else LogNotifier."""
    if config.bot_token and config.chat_id:
        return TelegramNotifier(config.bot_token, config.chat_id)
    log.info("telegram_disabled")
    return LogNotifier()
