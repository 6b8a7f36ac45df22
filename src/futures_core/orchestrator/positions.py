"""Print normalized open positions.

    python -m futures_core.orchestrator.positions [--config path] [SYMBOL]
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import structlog

from futures_core.config.loader import ensure_auth, load_config
from futures_core.errors import TradingError
from futures_core.exchange import BrokerGateway, MexcFuturesClient
from futures_core.logging.setup import setup_logging
from futures_core.models import Position
from futures_core.trading import PositionTracker
from futures_core.trading.tracker import held_symbol

log = structlog.get_logger("positions")


async def fetch_positions(gateway: BrokerGateway, symbol: str | None = None) -> dict[str, Position]:
    """Open positions keyed by symbol, priced at the current ticker."""
    raw = await gateway.get_open_positions()
    prices: dict[str, float | None] = {}
    for s in (held_symbol(r) for r in raw):
        if s is None or (symbol and s != symbol):
            continue
        try:
            prices[s] = await gateway.get_ticker(s)
        except TradingError as exc:
            log.warning("ticker_unavailable", symbol=s, error=str(exc))
            prices[s] = None

    positions = PositionTracker().normalize(raw, prices)
    if symbol:
        positions = {s: p for s, p in positions.items() if s == symbol}
    return positions


def format_position(index: int, position: Position) -> str:
    lines = [
        f"Position {index}:",
        f"  Symbol:         {position.symbol}",
        f"  Side:           {position.side}",
        f"  Entry Price:    ${position.entry_price:.8f}",
        f"  Margin Used:    ${position.margin_used:.4f}",
        f"  Notional:       ${position.notional:.4f}",
        f"  Unrealized PnL: ${position.unrealized_pnl:.4f} ({position.roi:.2f}%)",
    ]
    if position.position_id:
        lines.append(f"  Position ID:    {position.position_id}")
    return "\n".join(lines)


async def _run(config_path: str | None, symbol: str | None) -> int:
    config = load_config(config_path)
    setup_logging(level=config.logging.level, log_format="console")
    ensure_auth(config)

    client = MexcFuturesClient.from_config(config.exchange)
    try:
        positions = await fetch_positions(client, symbol)
    finally:
        await client.close()

    print(f"Found {len(positions)} active position(s)")
    for index, position in enumerate(positions.values(), start=1):
        print()
        print(format_position(index, position))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Show open MEXC futures positions")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("symbol", nargs="?", default=None, help="Only show this symbol, e.g. BTC_USDT")
    args = parser.parse_args(argv)
    try:
        return asyncio.run(_run(args.config, args.symbol))
    except TradingError as exc:
        print(f"Error fetching positions: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
