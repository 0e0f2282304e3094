"""
Core domain models and matching engine logic
"""

from .order import (
    Order,
    OrderType,
    Side,
    SelfTradeBehavior,
    SubmitStatus,
    SubmitResult,
    CancelResult,
)
from .fill import Fill, FeeSchedule
from .market import MarketSpec
from .requests import NewOrderRequest, CancelRequest
from .price_level import PriceLevel
from .book_side import OrderBookSide
from .order_book import OrderBook
from .trade_log import TradeLog, TradeStats
from .snapshot import SnapshotView, LevelSummary, Depth
from .matching_engine import MatchingEngine
from .registry import MarketRegistry

__all__ = [
    "Order",
    "OrderType",
    "Side",
    "SelfTradeBehavior",
    "SubmitStatus",
    "SubmitResult",
    "CancelResult",
    "Fill",
    "FeeSchedule",
    "MarketSpec",
    "NewOrderRequest",
    "CancelRequest",
    "PriceLevel",
    "OrderBookSide",
    "OrderBook",
    "TradeLog",
    "TradeStats",
    "SnapshotView",
    "LevelSummary",
    "Depth",
    "MatchingEngine",
    "MarketRegistry",
]
