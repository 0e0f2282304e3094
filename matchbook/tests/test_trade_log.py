"""
Unit tests for the trade log.
"""

from decimal import Decimal

import pytest

from matchbook.core.fill import Fill
from matchbook.core.order import Side
from matchbook.core.trade_log import TradeLog
from matchbook.utils.exceptions import OrderBookException


def make_fill(fill_id, price, qty, ts):
    return Fill(
        fill_id=fill_id,
        symbol="SOL-USDC",
        taker_order_id=fill_id + 100,
        maker_order_id=fill_id,
        price=price,
        qty=qty,
        timestamp=ts,
        taker_side=Side.BUY,
        taker_owner_id="alice",
        maker_owner_id="bob",
    )


@pytest.fixture
def trade_log():
    log = TradeLog()
    log.record(make_fill(1, 100, 2, 1000))
    log.record(make_fill(2, 110, 1, 2000))
    log.record(make_fill(3, 90, 3, 2000))
    log.record(make_fill(4, 105, 4, 3000))
    return log


class TestTradeLog:
    """Append and query behavior."""

    def test_query_most_recent_first(self, trade_log):
        assert [f.fill_id for f in trade_log.query()] == [4, 3, 2, 1]

    def test_query_since_is_inclusive(self, trade_log):
        """Fills at exactly since_timestamp are included."""
        assert [f.fill_id for f in trade_log.query(2000)] == [4, 3, 2]

    def test_query_limit(self, trade_log):
        assert [f.fill_id for f in trade_log.query(limit=2)] == [4, 3]
        assert list(trade_log.query(limit=0)) == []

    def test_query_until_is_inclusive(self, trade_log):
        """Fills after until_timestamp are left out, limit counts from the bound."""
        assert [f.fill_id for f in trade_log.query(until_timestamp=2000)] == [3, 2, 1]
        assert [f.fill_id for f in trade_log.query(2000, 1, 2000)] == [3]
        assert list(trade_log.query(until_timestamp=999)) == []

    def test_negative_limit_rejected(self, trade_log):
        with pytest.raises(ValueError):
            trade_log.query(limit=-1)

    def test_query_bounds_fixed_at_call_time(self, trade_log):
        """Fills recorded after a query starts are not yielded by it."""
        results = trade_log.query()
        trade_log.record(make_fill(5, 100, 1, 4000))

        assert [f.fill_id for f in results] == [4, 3, 2, 1]
        assert len(trade_log) == 5

    def test_out_of_order_timestamp_rejected(self, trade_log):
        with pytest.raises(OrderBookException):
            trade_log.record(make_fill(5, 100, 1, 500))
        assert len(trade_log) == 4

    def test_replay_oldest_first(self, trade_log):
        assert [f.fill_id for f in trade_log] == [1, 2, 3, 4]
        assert trade_log.last_fill().fill_id == 4


class TestTradeStats:
    """Windowed statistics."""

    def test_stats_over_window(self, trade_log):
        stats = trade_log.stats(2000)

        assert stats.last_price == 105
        assert stats.high == 110
        assert stats.low == 90
        assert stats.base_volume == 8
        assert stats.volume == 110 * 1 + 90 * 3 + 105 * 4
        assert stats.trade_count == 3
        # (105 - 110) / 110 * 100
        assert stats.price_change_pct == Decimal(-5) / Decimal(110) * 100

    def test_stats_whole_log(self, trade_log):
        stats = trade_log.stats(0)
        assert stats.price_change_pct == Decimal("5")
        assert stats.trade_count == 4

    def test_empty_window_uses_last_price(self, trade_log):
        """With no fills in the window, high and low fall back to the last price."""
        stats = trade_log.stats(10_000)

        assert stats.last_price == 105
        assert stats.high == stats.low == 105
        assert stats.volume == 0
        assert stats.price_change_pct == Decimal("0")

    def test_stats_ignore_later_fills(self, trade_log):
        """A window ending in the past reports the market as it was then."""
        stats = trade_log.stats(0, 2000)

        assert stats.last_price == 90
        assert stats.high == 110
        assert stats.low == 90
        assert stats.trade_count == 3
        assert stats.price_change_pct == Decimal("-10")

    def test_empty_bounded_window_uses_last_price_before_end(self, trade_log):
        stats = trade_log.stats(2500, 2900)

        assert stats.last_price == 90
        assert stats.trade_count == 0

    def test_empty_log(self):
        stats = TradeLog().stats(0)
        assert stats.last_price == 0
        assert stats.trade_count == 0
