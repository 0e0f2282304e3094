"""
Shared fixtures for matching engine tests.
"""

from decimal import Decimal

import pytest

from matchbook.config import Settings
from matchbook.core.market import MarketSpec
from matchbook.core.matching_engine import MatchingEngine
from matchbook.core.order import OrderType, SelfTradeBehavior, Side
from matchbook.core.registry import MarketRegistry
from matchbook.core.requests import NewOrderRequest

SYMBOL = "SOL-USDC"
START_MS = 1_700_000_000_000


class ManualClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


def make_request(side, qty, price=None, owner="alice", order_type=OrderType.LIMIT,
                 symbol=SYMBOL, client_id=None) -> NewOrderRequest:
    return NewOrderRequest(
        symbol=symbol,
        side=side,
        price=price,
        qty=qty,
        order_type=order_type,
        owner_id=owner,
        client_id=client_id,
    )


def buy(qty, price=None, owner="alice", order_type=OrderType.LIMIT, **kwargs) -> NewOrderRequest:
    return make_request(Side.BUY, qty, price, owner, order_type, **kwargs)


def sell(qty, price=None, owner="bob", order_type=OrderType.LIMIT, **kwargs) -> NewOrderRequest:
    return make_request(Side.SELL, qty, price, owner, order_type, **kwargs)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def market():
    return MarketSpec(SYMBOL, tick_size=Decimal("0.01"), lot_size=Decimal("0.001"))


@pytest.fixture
def engine(clock, market):
    """Engine with default fees, decrement-take and no slippage bound."""
    return MatchingEngine(SYMBOL, market=market, clock=clock)


@pytest.fixture
def engine_factory(clock, market):
    def _make(**kwargs):
        kwargs.setdefault("market", market)
        kwargs.setdefault("clock", clock)
        return MatchingEngine(SYMBOL, **kwargs)
    return _make


@pytest.fixture
def settings():
    return Settings(
        self_trade_behavior=SelfTradeBehavior.DECREMENT_TAKE.value,
        market_slippage_bound=Decimal("0.05"),
        supported_symbols=[],
    )


@pytest.fixture
def registry(settings, clock):
    return MarketRegistry(settings=settings, clock=clock)
