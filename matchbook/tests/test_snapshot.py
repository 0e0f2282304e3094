"""
Unit tests for snapshot views.
"""

from decimal import Decimal

import pytest

from conftest import buy, sell
from matchbook.core.order import Side
from matchbook.core.snapshot import Depth, LevelSummary
from matchbook.utils.exceptions import InsufficientLiquidityException, InvalidOrderException


@pytest.fixture
def seeded(engine):
    engine.submit(buy(5, 99))
    engine.submit(buy(3, 99, owner="carol"))
    engine.submit(buy(4, 97))
    engine.submit(sell(2, 101))
    engine.submit(sell(6, 104))
    return engine


class TestSnapshotView:
    """Depth, spread and price estimation on a captured book."""

    def test_depth_levels(self, seeded):
        depth = seeded.snapshot().depth(1)

        assert depth == Depth(bids=[LevelSummary(99, 8, 2)], asks=[LevelSummary(101, 2, 1)])

    def test_depth_all_levels(self, seeded):
        depth = seeded.snapshot().depth()
        assert [level.price for level in depth.bids] == [99, 97]
        assert [level.price for level in depth.asks] == [101, 104]

    def test_negative_depth_rejected(self, seeded):
        with pytest.raises(ValueError):
            seeded.snapshot().depth(-1)

    def test_capture_limits_levels(self, seeded):
        snapshot = seeded.snapshot(1)
        assert len(snapshot.bids) == 1
        assert len(snapshot.asks) == 1

    def test_spread_and_mid(self, seeded):
        snapshot = seeded.snapshot()

        assert snapshot.spread() == 2
        assert snapshot.mid_price == Decimal(100)
        assert snapshot.spread_percentage() == Decimal(2) / Decimal(99) * 100

    def test_spread_undefined_with_empty_side(self, engine):
        engine.submit(buy(5, 99))
        snapshot = engine.snapshot()

        assert snapshot.spread() is None
        assert snapshot.mid_price is None
        assert snapshot.spread_percentage() == Decimal("0")

    def test_estimate_fill_price(self, seeded):
        """VWAP over the levels a market buy would sweep."""
        snapshot = seeded.snapshot()

        assert snapshot.estimate_fill_price(Side.BUY, 2) == Decimal(101)
        assert snapshot.estimate_fill_price(Side.BUY, 4) == Decimal(2 * 101 + 2 * 104) / 4
        assert snapshot.estimate_fill_price(Side.SELL, 10) == Decimal(8 * 99 + 2 * 97) / 10

    def test_estimate_insufficient_liquidity(self, seeded):
        with pytest.raises(InsufficientLiquidityException):
            seeded.snapshot().estimate_fill_price(Side.BUY, 9)

    def test_estimate_invalid_quantity(self, seeded):
        with pytest.raises(InvalidOrderException):
            seeded.snapshot().estimate_fill_price(Side.BUY, 0)

    def test_to_dict(self, seeded, clock):
        data = seeded.snapshot(1).to_dict()

        assert data["timestamp"] == clock.now
        assert data["bids"] == [{"price": 99, "quantity": 8, "order_count": 2}]
        assert data["spread"] == 2
