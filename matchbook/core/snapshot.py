"""
Read-only projection of an order book

A SnapshotView is copied out of the book while the engine lock is held, so
it stays consistent however the book changes afterwards.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple

from .order import Side
from .order_book import OrderBook
from ..utils.exceptions import InsufficientLiquidityException, InvalidOrderException


@dataclass(frozen=True)
class LevelSummary:
    """Aggregate view of one price level."""
    price: int
    quantity: int
    order_count: int

    def to_dict(self) -> dict:
        return {"price": self.price, "quantity": self.quantity, "order_count": self.order_count}


@dataclass(frozen=True)
class Depth:
    """Top levels of both sides, best first."""
    bids: List[LevelSummary] = field(default_factory=list)
    asks: List[LevelSummary] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "bids": [level.to_dict() for level in self.bids],
            "asks": [level.to_dict() for level in self.asks],
        }


@dataclass(frozen=True)
class SnapshotView:
    """
    Frozen depth snapshot of one market.

    Attributes:
        symbol: Trading pair symbol
        bids: Bid levels, highest price first
        asks: Ask levels, lowest price first
        timestamp: Capture time in epoch milliseconds
    """

    symbol: str
    bids: Tuple[LevelSummary, ...]
    asks: Tuple[LevelSummary, ...]
    timestamp: int

    @classmethod
    def capture(cls, book: OrderBook, timestamp: int, levels: Optional[int] = None) -> "SnapshotView":
        """Copy the top `levels` of each side (all when None). Caller holds the book's lock."""
        return cls(
            symbol=book.symbol,
            bids=tuple(
                LevelSummary(level.price, level.total_quantity, level.order_count)
                for level in book.bids.levels(levels)
            ),
            asks=tuple(
                LevelSummary(level.price, level.total_quantity, level.order_count)
                for level in book.asks.levels(levels)
            ),
            timestamp=timestamp,
        )

    def depth(self, n: Optional[int] = None) -> Depth:
        """Top n levels per side (all captured levels when None)."""
        if n is not None and n < 0:
            raise ValueError(f"Depth cannot be negative, got {n}")
        return Depth(bids=list(self.bids[:n]), asks=list(self.asks[:n]))

    @property
    def best_bid(self) -> Optional[int]:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> Optional[int]:
        return self.asks[0].price if self.asks else None

    def spread(self) -> Optional[int]:
        """Best ask minus best bid, or None when either side is empty."""
        if self.best_bid is None or self.best_ask is None:
            return None
        return self.best_ask - self.best_bid

    def spread_percentage(self) -> Decimal:
        """Spread as a percentage of the best bid; 0 without a positive bid or a spread."""
        spread = self.spread()
        if spread is None or not self.best_bid:
            return Decimal("0")
        return Decimal(spread) / Decimal(self.best_bid) * 100

    @property
    def mid_price(self) -> Optional[Decimal]:
        if self.best_bid is None or self.best_ask is None:
            return None
        return (Decimal(self.best_bid) + Decimal(self.best_ask)) / 2

    def estimate_fill_price(self, side: Side, quantity: int) -> Decimal:
        """
        Volume-weighted price a market order of `quantity` would pay.

        Args:
            side: Side of the incoming order (BUY walks the asks)
            quantity: Quantity in lots

        Raises:
            InvalidOrderException: If quantity is not positive
            InsufficientLiquidityException: If the captured levels cannot fill it
        """
        if quantity <= 0:
            raise InvalidOrderException(f"Quantity must be positive, got {quantity}")

        levels = self.asks if side == Side.BUY else self.bids
        remaining = quantity
        notional = 0
        for level in levels:
            take = min(remaining, level.quantity)
            notional += take * level.price
            remaining -= take
            if remaining == 0:
                break

        if remaining > 0:
            raise InsufficientLiquidityException(
                f"Insufficient liquidity to fill {quantity} on {self.symbol}",
                details={"symbol": self.symbol, "side": side.value, "available": quantity - remaining}
            )

        return Decimal(notional) / Decimal(quantity)

    def to_dict(self) -> dict:
        spread = self.spread()
        return {
            "symbol": self.symbol,
            "timestamp": self.timestamp,
            "bids": [level.to_dict() for level in self.bids],
            "asks": [level.to_dict() for level in self.asks],
            "best_bid": self.best_bid,
            "best_ask": self.best_ask,
            "spread": spread,
            "spread_percentage": str(self.spread_percentage()),
        }
