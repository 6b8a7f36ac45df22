"""Place or cancel a single order by hand.

    python -m futures_core.orchestrator.order [--config path] [LONG|SHORT] [SYMBOL]
    python -m futures_core.orchestrator.order [--config path] --cancel ORDER_ID [SYMBOL]
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import structlog

from futures_core.config.loader import ensure_auth, load_config
from futures_core.config.schema import RiskConfig
from futures_core.errors import TradingError
from futures_core.exchange import BrokerGateway, MexcFuturesClient
from futures_core.logging.setup import setup_logging
from futures_core.models import OrderAck, OrderRequest, RiskParameters, Side
from futures_core.notify import NotificationSink, build_notifier, safe_notify
from futures_core.notify.base import ERROR, ORDER_CANCELLED, ORDER_PLACED
from futures_core.trading.risk import compute_stops

log = structlog.get_logger("manual_order")

MANUAL_CANCEL_REASON = "Manual cancellation"


async def prepare_order(
    gateway: BrokerGateway,
    symbol: str,
    side: Side,
    config: RiskConfig,
) -> tuple[OrderRequest, RiskParameters, float]:
    """Market entry for *symbol* sized from config, with stops off the current ticker."""
    price = await gateway.get_ticker(symbol)
    if not price or price <= 0:
        raise TradingError(f"Could not get current price for {symbol}")

    risk = compute_stops(price, side, config)
    order = OrderRequest(
        symbol=symbol,
        side="OPEN_LONG" if side == "LONG" else "OPEN_SHORT",
        type="MARKET",
        vol=config.position_size,
        leverage=config.leverage,
        stop_loss_price=risk.stop_loss_price,
        take_profit_price=risk.take_profit_price,
    )
    return order, risk, price


def format_order(order: OrderRequest, price: float, config: RiskConfig) -> str:
    take_profit = (
        f"${order.take_profit_price} ({config.take_profit_pct * 100:.2f}%)"
        if order.take_profit_price is not None and config.take_profit_pct
        else "disabled"
    )
    return "\n".join([
        "Order Details:",
        f"  Symbol:        {order.symbol}",
        f"  Side:          {order.side}",
        f"  Type:          {order.type}",
        f"  Current Price: ${price} (reference only)",
        f"  Volume:        {order.vol}",
        f"  Leverage:      {order.leverage}x",
        f"  Stop Loss:     ${order.stop_loss_price} ({config.stop_loss_pct * 100:.2f}%)",
        f"  Take Profit:   {take_profit}",
    ])


async def place_order(
    gateway: BrokerGateway,
    notifier: NotificationSink,
    order: OrderRequest,
    price: float | None = None,
) -> OrderAck:
    """Submit *order*, notify the result, and re-raise any failure."""
    try:
        ack = await gateway.submit_order(order)
    except TradingError as exc:
        log.error("manual_order_failed", symbol=order.symbol, side=order.side, error=str(exc))
        await safe_notify(notifier, ERROR, {
            "context": f"Order submission failed for {order.symbol}",
            "error": str(exc),
        })
        raise

    log.info("manual_order_placed", symbol=order.symbol, side=order.side, order_id=ack.order_id)
    await safe_notify(notifier, ORDER_PLACED, {
        "symbol": order.symbol,
        "side": order.side,
        "type": order.type,
        "price": price,
        "vol": order.vol,
        "leverage": order.leverage,
        "order_id": ack.order_id,
    })
    return ack


async def cancel_order(
    gateway: BrokerGateway,
    notifier: NotificationSink,
    symbol: str,
    order_id: str,
    reason: str = MANUAL_CANCEL_REASON,
) -> OrderAck:
    """Cancel *order_id*, notify the result, and re-raise any failure."""
    try:
        ack = await gateway.cancel_order(symbol, order_id)
    except TradingError as exc:
        log.error("order_cancel_failed", symbol=symbol, order_id=order_id, error=str(exc))
        await safe_notify(notifier, ERROR, {
            "context": f"Order cancellation failed for {symbol}",
            "error": str(exc),
        })
        raise

    log.info("order_cancelled", symbol=symbol, order_id=order_id, reason=reason)
    await safe_notify(notifier, ORDER_CANCELLED, {
        "symbol": symbol,
        "order_id": order_id,
        "reason": reason,
    })
    return ack


async def _run(config_path: str | None, side: Side, symbol: str, cancel_id: str | None) -> int:
    config = load_config(config_path)
    setup_logging(level=config.logging.level, log_format="console")
    ensure_auth(config)

    client = MexcFuturesClient.from_config(config.exchange)
    notifier = build_notifier(config.telegram)
    try:
        if cancel_id is not None:
            await cancel_order(client, notifier, symbol, cancel_id)
            print(f"Cancelled order {cancel_id} on {symbol}")
            return 0

        order, _, price = await prepare_order(client, symbol, side, config.risk)
        print(format_order(order, price, config.risk))
        print()
        ack = await place_order(client, notifier, order, price)
        print(f"Order placed: {ack.order_id or 'N/A'}")
        return 0
    finally:
        await client.close()
        closer = getattr(notifier, "close", None)
        if closer is not None:
            await closer()


def _positionals(values: list[str]) -> tuple[Side, str]:
    """[LONG|SHORT] [SYMBOL] in that order, either may be omitted."""
    side: Side = "LONG"
    symbol = "BTC_USDT"
    rest = list(values)
    if rest and rest[0].upper() in ("LONG", "SHORT"):
        side = "LONG" if rest.pop(0).upper() == "LONG" else "SHORT"
    if rest:
        symbol = rest.pop(0)
    if rest:
        raise ValueError(f"unexpected arguments: {' '.join(rest)}")
    return side, symbol


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Place or cancel a MEXC futures order")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--cancel", default=None, metavar="ORDER_ID", help="Cancel this order instead")
    parser.add_argument("positionals", nargs="*", metavar="[LONG|SHORT] [SYMBOL]")
    args = parser.parse_args(argv)
    try:
        side, symbol = _positionals(args.positionals)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        return asyncio.run(_run(args.config, side, symbol, args.cancel))
    except TradingError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
