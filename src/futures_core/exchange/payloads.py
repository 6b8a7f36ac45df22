"""Decoding of MEXC futures payloads into canonical shapes.

The REST API wraps most results as ``{"success": true, "code": 0, "data": ...}``
but some endpoints return the bare value. Each decoder accepts exactly those
two shapes and raises DecodeError on anything else.
"""

from __future__ import annotations

from typing import Any

from futures_core.errors import BrokerRejection, DecodeError
from futures_core.models import Candle

_KLINE_COLUMNS = ("time", "open", "high", "low", "close", "vol")


def check_api_error(payload: Any) -> None:
    """Raise BrokerRejection if the envelope reports failure."""
    if not isinstance(payload, dict):
        return
    code = payload.get("code")
    if payload.get("success") is False or (code is not None and code != 0):
        message = payload.get("message") or payload.get("msg") or "request rejected"
        raise BrokerRejection(f"MEXC rejected request: code={code}, message={message}", code=code)


def unwrap_list(payload: Any, what: str) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        return payload["data"]
    raise DecodeError(f"{what}: expected a list or {{data: [...]}}, got {_describe(payload)}")


def unwrap_object(payload: Any, what: str) -> dict[str, Any]:
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, dict):
            return data
        if "data" not in payload:
            return payload
    raise DecodeError(f"{what}: expected an object or {{data: {{...}}}}, got {_describe(payload)}")


def _describe(payload: Any) -> str:
    if isinstance(payload, dict):
        return f"object with keys {sorted(payload)[:6]}"
    return type(payload).__name__


def _to_float(value: Any, what: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"{what}: not a number: {value!r}") from exc


def decode_klines(payload: Any) -> list[Candle]:
    """Columnar kline arrays (``time`` in seconds) to candles, oldest first."""
    data = unwrap_object(payload, "klines")
    missing = [col for col in _KLINE_COLUMNS if not isinstance(data.get(col), list)]
    if missing:
        raise DecodeError(f"klines: missing columns {missing}")

    columns = [data[col] for col in _KLINE_COLUMNS]
    length = len(columns[0])
    if any(len(col) != length for col in columns):
        raise DecodeError("klines: column lengths differ")

    return [
        Candle(
            open_time=int(_to_float(t, "klines.time")) * 1000,
            open=_to_float(o, "klines.open"),
            high=_to_float(h, "klines.high"),
            low=_to_float(lo, "klines.low"),
            close=_to_float(c, "klines.close"),
            volume=_to_float(v, "klines.vol"),
        )
        for t, o, h, lo, c, v in zip(*columns)
    ]


def decode_ticker_price(payload: Any, symbol: str) -> float:
    """Last traded price from a single-symbol ticker payload."""
    ticker = unwrap_object(payload, f"ticker {symbol}")
    if "lastPrice" not in ticker:
        raise DecodeError(f"ticker {symbol}: no lastPrice field")
    return _to_float(ticker["lastPrice"], f"ticker {symbol}")


def decode_tickers(payload: Any) -> dict[str, dict[str, Any]]:
    """All-symbol ticker payload keyed by symbol."""
    out: dict[str, dict[str, Any]] = {}
    for item in unwrap_list(payload, "tickers"):
        if isinstance(item, dict) and item.get("symbol"):
            out[item["symbol"]] = item
    return out


def decode_contracts(payload: Any) -> list[dict[str, Any]]:
    return [c for c in unwrap_list(payload, "contracts") if isinstance(c, dict)]


def decode_positions(payload: Any) -> list[dict[str, Any]]:
    records = unwrap_list(payload, "positions")
    for record in records:
        if not isinstance(record, dict):
            raise DecodeError(f"positions: record is {type(record).__name__}, expected object")
    return records


def decode_order_id(payload: Any) -> str | None:
    """Order id from a submit response (``data`` is the id or an object)."""
    if not isinstance(payload, dict):
        raise DecodeError(f"order: expected an object, got {_describe(payload)}")
    data = payload.get("data")
    if isinstance(data, dict):
        data = data.get("orderId")
    return str(data) if data not in (None, "") else None


def decode_cancel_result(payload: Any, order_id: str) -> None:
    """Raise BrokerRejection if the cancel response reports an error for *order_id*.

    ``data`` lists one ``{orderId, errorCode, errorMsg}`` entry per requested id.
    """
    for entry in unwrap_list(payload, "cancel"):
        if not isinstance(entry, dict) or str(entry.get("orderId")) != str(order_id):
            continue
        try:
            code = int(entry.get("errorCode") or 0)
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"cancel: non-numeric errorCode {entry.get('errorCode')!r}") from exc
        if code != 0:
            raise BrokerRejection(
                f"Cancel rejected for order {order_id}: {entry.get('errorMsg') or 'unknown'}",
                code=code,
            )
