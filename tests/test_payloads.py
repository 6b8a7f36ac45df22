"""Tests for MEXC payload decoding."""

from __future__ import annotations

import pytest

from futures_core.errors import BrokerRejection, DecodeError
from futures_core.exchange.payloads import (
    check_api_error,
    decode_cancel_result,
    decode_contracts,
    decode_klines,
    decode_order_id,
    decode_positions,
    decode_ticker_price,
    decode_tickers,
    unwrap_list,
)

KLINES = {
    "success": True,
    "code": 0,
    "data": {
        "time": [1700000000, 1700000060],
        "open": [1.0, 1.1],
        "high": [1.2, 1.3],
        "low": [0.9, 1.0],
        "close": [1.1, 1.2],
        "vol": [500, 650],
    },
}


class TestCheckApiError:
    def test_success_passes(self):
        check_api_error({"success": True, "code": 0, "data": []})

    def test_failure_raises_with_code(self):
        with pytest.raises(BrokerRejection) as exc_info:
            check_api_error({"success": False, "code": 602, "message": "Signature verification failed"})
        assert exc_info.value.code == 602
        assert "Signature verification failed" in str(exc_info.value)

    def test_nonzero_code_raises(self):
        with pytest.raises(BrokerRejection):
            check_api_error({"code": 2005, "msg": "balance insufficient"})

    def test_bare_list_passes(self):
        check_api_error([1, 2, 3])


class TestUnwrap:
    def test_envelope_and_bare_list(self):
        assert unwrap_list({"data": [1]}, "x") == [1]
        assert unwrap_list([2], "x") == [2]

    def test_rejects_other_shapes(self):
        with pytest.raises(DecodeError):
            unwrap_list({"data": {"a": 1}}, "x")
        with pytest.raises(DecodeError):
            unwrap_list("nope", "x")


class TestDecodeKlines:
    def test_columnar(self):
        candles = decode_klines(KLINES)
        assert len(candles) == 2
        assert candles[0].open_time == 1_700_000_000_000
        assert candles[1].close == 1.2
        assert candles[1].volume == 650

    def test_missing_column(self):
        payload = {"data": {k: v for k, v in KLINES["data"].items() if k != "vol"}}
        with pytest.raises(DecodeError, match="vol"):
            decode_klines(payload)

    def test_length_mismatch(self):
        data = dict(KLINES["data"], close=[1.1])
        with pytest.raises(DecodeError, match="lengths"):
            decode_klines({"data": data})

    def test_non_numeric(self):
        data = dict(KLINES["data"], close=[1.1, "abc"])
        with pytest.raises(DecodeError):
            decode_klines({"data": data})


class TestDecodeTickers:
    def test_single_ticker(self):
        assert decode_ticker_price({"data": {"symbol": "BTC_USDT", "lastPrice": 65000.5}}, "BTC_USDT") == 65000.5

    def test_missing_last_price(self):
        with pytest.raises(DecodeError):
            decode_ticker_price({"data": {"symbol": "BTC_USDT"}}, "BTC_USDT")

    def test_all_tickers_keyed(self):
        tickers = decode_tickers({"data": [{"symbol": "A_USDT", "lastPrice": 1}, {"lastPrice": 2}]})
        assert list(tickers) == ["A_USDT"]


class TestDecodeAccount:
    def test_contracts(self):
        assert decode_contracts([{"symbol": "A_USDT"}, "junk"]) == [{"symbol": "A_USDT"}]

    def test_positions(self):
        assert decode_positions({"data": [{"symbol": "A_USDT"}]}) == [{"symbol": "A_USDT"}]

    def test_positions_reject_non_objects(self):
        with pytest.raises(DecodeError):
            decode_positions({"data": ["A_USDT"]})

    def test_order_id_forms(self):
        assert decode_order_id({"data": 739113577038255616}) == "739113577038255616"
        assert decode_order_id({"data": {"orderId": "42"}}) == "42"
        assert decode_order_id({"data": None}) is None


class TestDecodeCancel:
    def test_success(self):
        decode_cancel_result({"data": [{"orderId": 42, "errorCode": 0}]}, "42")

    def test_other_order_errors_ignored(self):
        decode_cancel_result([{"orderId": 7, "errorCode": 2040}, {"orderId": 42, "errorCode": 0}], "42")

    def test_error_code_raises(self):
        with pytest.raises(BrokerRejection) as exc_info:
            decode_cancel_result({"data": [{"orderId": "42", "errorCode": "2041", "errorMsg": "filled"}]}, "42")
        assert exc_info.value.code == 2041

    def test_non_list_rejected(self):
        with pytest.raises(DecodeError):
            decode_cancel_result({"data": {"orderId": 42}}, "42")
