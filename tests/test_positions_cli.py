"""Tests for the open-positions report."""

from __future__ import annotations

import asyncio

import pytest

from fakes import FakeGateway, position_record

from futures_core.orchestrator.positions import fetch_positions, format_position, main


class TestFetchPositions:
    def test_priced_at_ticker(self):
        gateway = FakeGateway(
            positions=[position_record("BTC_USDT"), position_record("ETH_USDT", position_type=2, position_id="202")],
            tickers={"BTC_USDT": 105.0, "ETH_USDT": 95.0},
        )
        positions = asyncio.run(fetch_positions(gateway))

        assert set(positions) == {"BTC_USDT", "ETH_USDT"}
        assert positions["BTC_USDT"].roi == pytest.approx(50.0)
        assert positions["ETH_USDT"].side == "SHORT"
        assert positions["ETH_USDT"].unrealized_pnl == pytest.approx(5.0)

    def test_symbol_filter(self):
        gateway = FakeGateway(
            positions=[position_record("BTC_USDT"), position_record("ETH_USDT")],
            tickers={"BTC_USDT": 100.0, "ETH_USDT": 100.0},
        )
        assert list(asyncio.run(fetch_positions(gateway, "ETH_USDT"))) == ["ETH_USDT"]

    def test_missing_ticker_uses_profit_ratio(self):
        gateway = FakeGateway(positions=[position_record(profit_ratio=0.25)])
        position = asyncio.run(fetch_positions(gateway))["BTC_USDT"]
        assert position.current_price is None
        assert position.roi == 25.0
        assert position.unrealized_pnl == 2.5

    def test_empty_positions_ignored(self):
        gateway = FakeGateway(positions=[position_record(hold_vol=0)])
        assert asyncio.run(fetch_positions(gateway)) == {}


class TestFormatPosition:
    def test_lines(self):
        gateway = FakeGateway(positions=[position_record()], tickers={"BTC_USDT": 105.0})
        position = asyncio.run(fetch_positions(gateway))["BTC_USDT"]

        text = format_position(1, position)

        assert text.splitlines()[0] == "Position 1:"
        assert "Side:           LONG" in text
        assert "Entry Price:    $100.00000000" in text
        assert "Notional:       $100.0000" in text
        assert "Unrealized PnL: $5.0000 (50.00%)" in text
        assert "Position ID:    101" in text


class TestMain:
    def test_missing_credentials_exit_code(self, monkeypatch, capsys):
        monkeypatch.delenv("MEXC_API_KEY", raising=False)
        monkeypatch.delenv("MEXC_API_SECRET", raising=False)

        assert main(["--config", "/tmp/nonexistent_config_12345.yaml"]) == 1
        assert "MEXC_API_KEY" in capsys.readouterr().err
