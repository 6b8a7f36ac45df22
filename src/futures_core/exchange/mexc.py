"""MEXC futures client — async REST with HMAC signing and bounded retries."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from futures_core.config.schema import ExchangeConfig
from futures_core.errors import BrokerRejection, DecodeError, TransientNetworkError
from futures_core.exchange.base import BrokerGateway, MarketDataSource
from futures_core.exchange.payloads import (
    check_api_error,
    decode_cancel_result,
    decode_contracts,
    decode_klines,
    decode_order_id,
    decode_positions,
    decode_ticker_price,
    decode_tickers,
)
from futures_core.models import Candle, OrderAck, OrderRequest, Side

log = structlog.get_logger("mexc")

PATHS = {
    "contracts": "/api/v1/contract/detail",
    "tickers": "/api/v1/contract/ticker",
    "klines": "/api/v1/contract/kline",
    "positions": "/api/v1/private/position/open_positions",
    "submit_order": "/api/v1/private/order/submit",
    "cancel_order": "/api/v1/private/order/cancel",
}

# Config interval → MEXC kline interval
INTERVALS = {
    "1m": "Min1",
    "5m": "Min5",
    "15m": "Min15",
    "30m": "Min30",
    "60m": "Min60",
    "1h": "Min60",
    "4h": "Hour4",
    "8h": "Hour8",
    "1d": "Day1",
    "1w": "Week1",
    "1M": "Month1",
}

INTERVAL_SECONDS = {
    "1m": 60,
    "5m": 300,
    "15m": 900,
    "30m": 1800,
    "60m": 3600,
    "1h": 3600,
    "4h": 14400,
    "8h": 28800,
    "1d": 86400,
    "1w": 604800,
    "1M": 2592000,
}

ORDER_SIDES = {"OPEN_LONG": 1, "CLOSE_SHORT": 2, "OPEN_SHORT": 3, "CLOSE_LONG": 4}
ORDER_TYPES = {"LIMIT": 1, "MARKET": 5}
OPEN_TYPE_ISOLATED = 1


def _query_string(params: dict[str, Any]) -> str:
    """Sorted, URL-encoded query string, skipping empty values."""
    items = sorted((k, v) for k, v in params.items() if v not in (None, ""))
    return urlencode(items)


class MexcFuturesClient(MarketDataSource, BrokerGateway):
    """Async client for MEXC's contract REST API.

    Idempotent GETs are retried up to ``max_retries`` times on transport
    errors and 5xx responses; order submission is never retried.
    """

    def __init__(
        self,
        base_url: str = "https://contract.mexc.com",
        api_key: str = "",
        api_secret: str = "",
        recv_window_ms: int = 5000,
        timeout_s: float = 5.0,
        max_retries: int = 3,
        retry_delay_s: float = 0.1,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.api_secret = api_secret
        self.recv_window_ms = recv_window_ms
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.retry_delay_s = retry_delay_s
        self._http = client
        self._clock = clock

    @classmethod
    def from_config(cls, config: ExchangeConfig) -> MexcFuturesClient:
        return cls(
            base_url=config.base_url,
            api_key=config.api_key,
            api_secret=config.api_secret,
            recv_window_ms=config.recv_window_ms,
            timeout_s=config.timeout_s,
            max_retries=config.max_retries,
        )

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self.timeout_s)
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()

    # --- transport ---

    def sign(self, timestamp: str, parameter_string: str) -> str:
        """HMAC-SHA256 over accessKey + timestamp + parameter string."""
        target = f"{self.api_key}{timestamp}{parameter_string}"
        return hmac.new(self.api_secret.encode(), target.encode(), hashlib.sha256).hexdigest()

    def _auth_headers(self, parameter_string: str) -> dict[str, str]:
        timestamp = str(int(self._clock() * 1000))
        return {
            "ApiKey": self.api_key,
            "Request-Time": timestamp,
            "Signature": self.sign(timestamp, parameter_string),
            "Recv-Window": str(self.recv_window_ms),
            "Content-Type": "application/json",
        }

    async def _get(self, path: str, params: dict[str, Any] | None = None, signed: bool = False) -> Any:
        query = _query_string(params or {})
        url = f"{self.base_url}{path}" + (f"?{query}" if query else "")
        headers = self._auth_headers(query) if signed else {}

        http = await self._get_http()
        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                resp = await http.get(url, headers=headers)
            except httpx.TransportError as exc:
                last_error = exc
                log.warning("mexc_request_error", path=path, attempt=attempt, error=str(exc))
            else:
                if resp.status_code < 500:
                    return self._parse(resp, path)
                last_error = httpx.HTTPStatusError(
                    f"server error {resp.status_code}", request=resp.request, response=resp,
                )
                log.warning("mexc_server_error", path=path, attempt=attempt, status=resp.status_code)
            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay_s * attempt)

        raise TransientNetworkError(f"GET {path} failed after {self.max_retries} attempts: {last_error}")

    async def _post(self, path: str, body: dict[str, Any] | list[Any]) -> Any:
        payload = json.dumps(body, separators=(",", ":"))
        http = await self._get_http()
        try:
            resp = await http.post(
                f"{self.base_url}{path}",
                content=payload,
                headers=self._auth_headers(payload),
            )
        except httpx.TransportError as exc:
            raise TransientNetworkError(f"POST {path} failed: {exc}") from exc
        if resp.status_code >= 500:
            raise TransientNetworkError(f"POST {path} failed: server error {resp.status_code}")
        return self._parse(resp, path)

    @staticmethod
    def _parse(resp: httpx.Response, path: str) -> Any:
        try:
            data = resp.json() if resp.content else {}
        except ValueError as exc:
            raise DecodeError(f"{path}: invalid JSON: {resp.text[:200]}") from exc
        if resp.is_error:
            raise BrokerRejection(f"MEXC API error {resp.status_code} on {path}: {resp.text[:200]}")
        check_api_error(data)
        return data

    # --- market data ---

    async def get_contracts(self) -> list[dict[str, Any]]:
        return decode_contracts(await self._get(PATHS["contracts"]))

    async def get_tickers(self) -> dict[str, dict[str, Any]]:
        return decode_tickers(await self._get(PATHS["tickers"]))

    async def get_klines(
        self,
        symbol: str,
        interval: str = "1m",
        start_s: int | None = None,
        end_s: int | None = None,
    ) -> list[Candle]:
        params = {"interval": INTERVALS.get(interval, interval), "start": start_s, "end": end_s}
        return decode_klines(await self._get(f"{PATHS['klines']}/{symbol}", params))

    async def fetch_series(self, symbol: str, interval: str, limit: int) -> list[Candle]:
        """Last *limit* candles, oldest first, via a start/end window."""
        seconds = INTERVAL_SECONDS.get(interval, 60)
        end = int(self._clock())
        start = end - (limit + 1) * seconds
        series = await self.get_klines(symbol, interval, start_s=start, end_s=end)
        if len(series) < limit:
            log.debug("short_series", symbol=symbol, requested=limit, got=len(series))
        return series[-limit:]

    async def get_ticker(self, symbol: str) -> float:
        return decode_ticker_price(await self._get(PATHS["tickers"], {"symbol": symbol}), symbol)

    # --- account ---

    async def get_open_positions(self) -> list[dict[str, Any]]:
        return decode_positions(await self._get(PATHS["positions"], signed=True))

    async def submit_order(self, order: OrderRequest) -> OrderAck:
        body: dict[str, Any] = {
            "symbol": order.symbol,
            # MEXC requires a price field even for market orders
            "price": order.price if order.price is not None else 1,
            "vol": order.vol,
            "side": ORDER_SIDES[order.side],
            "type": ORDER_TYPES[order.type],
            "openType": OPEN_TYPE_ISOLATED,
            "leverage": order.leverage,
        }
        if order.position_id:
            body["positionId"] = int(order.position_id)
        if order.stop_loss_price is not None:
            body["stopLossPrice"] = order.stop_loss_price
        if order.take_profit_price is not None:
            body["takeProfitPrice"] = order.take_profit_price

        log.info("order_submit", symbol=order.symbol, side=order.side, type=order.type, vol=order.vol)
        data = await self._post(PATHS["submit_order"], body)
        return OrderAck(order_id=decode_order_id(data), raw=data)

    async def close_position(self, symbol: str, side: Side) -> OrderAck:
        """Market-close the broker-reported held volume for *symbol*/*side*."""
        record = None
        for p in await self.get_open_positions():
            if (p.get("symbol") or p.get("contractCode")) != symbol:
                continue
            if float(p.get("holdVol") or 0) <= 0:
                continue
            # positionType 2 is short; anything else is read as long
            record_side = "SHORT" if str(p.get("positionType")) == "2" else "LONG"
            if record_side == side:
                record = p
                break
        if record is None:
            raise BrokerRejection(f"Position not found for {symbol}")

        order = OrderRequest(
            symbol=symbol,
            side="CLOSE_LONG" if side == "LONG" else "CLOSE_SHORT",
            type="MARKET",
            vol=float(record["holdVol"]),
            leverage=int(float(record.get("leverage") or 1)),
            position_id=str(record.get("positionId") or "") or None,
        )
        return await self.submit_order(order)

    async def cancel_order(self, symbol: str, order_id: str) -> OrderAck:
        """Cancel one order by id. The endpoint takes a bare JSON list of ids."""
        try:
            numeric_id = int(order_id)
        except (TypeError, ValueError) as exc:
            raise BrokerRejection(f"Invalid order id for {symbol}: {order_id!r}") from exc

        log.info("order_cancel", symbol=symbol, order_id=order_id)
        data = await self._post(PATHS["cancel_order"], [numeric_id])
        decode_cancel_result(data, order_id)
        return OrderAck(order_id=str(order_id), raw=data)
