"""
One side of the order book

OrderBookSide keeps the price levels of a single side sorted by priority:
bids descending (best = highest), asks ascending (best = lowest).
"""

from typing import Iterator, List, Optional, Tuple

from sortedcontainers import SortedDict

from .order import Order, Side
from .price_level import PriceLevel


def _descending(price: int) -> int:
    return -price


class OrderBookSide:
    """
    Price-ordered collection of PriceLevels for one side.

    Uses a SortedDict keyed by price, so the best level is available in
    O(log n) and a level at a known price is found in O(1). No matching
    logic lives here; the side only maintains sort order and FIFO integrity.
    """

    def __init__(self, side: Side):
        self.side: Side = side
        if side == Side.BUY:
            self._levels: SortedDict = SortedDict(_descending)
        else:
            self._levels = SortedDict()

    def best_level(self) -> Optional[PriceLevel]:
        """Level with the highest priority, or None if the side is empty."""
        if not self._levels:
            return None
        return self._levels.peekitem(0)[1]

    def best_price(self) -> Optional[int]:
        level = self.best_level()
        return level.price if level is not None else None

    def get_level(self, price: int) -> Optional[PriceLevel]:
        return self._levels.get(price)

    def insert(self, order: Order) -> PriceLevel:
        """
        Append an order at the tail of its price's FIFO, creating the level if needed.

        Raises:
            ValueError: If the order belongs to the other side or has no price
        """
        if order.side != self.side:
            raise ValueError(f"Cannot insert {order.side} order into {self.side} side")
        if order.price is None:
            raise ValueError("Cannot insert an order without a price")

        level = self._levels.get(order.price)
        if level is None:
            level = PriceLevel(order.price, self.side)
            self._levels[order.price] = level
        level.add_order(order)
        return level

    def remove_order(self, order: Order) -> Optional[Order]:
        """Remove an order from its level and drop the level if it became empty."""
        level = self._levels.get(order.price)
        if level is None:
            return None
        removed = level.remove_order(order.order_id)
        self.remove_if_empty(order.price)
        return removed

    def remove_if_empty(self, price: int) -> bool:
        """
        Drop the level at price if it holds no orders.

        Returns:
            True if a level was removed
        """
        level = self._levels.get(price)
        if level is not None and level.is_empty():
            del self._levels[price]
            return True
        return False

    def depth(self, n: Optional[int] = None) -> List[Tuple[int, int]]:
        """
        Top price levels with aggregate quantity.

        Args:
            n: Number of levels (None for all)

        Returns:
            List of (price, quantity) tuples, best first
        """
        return [(level.price, level.total_quantity) for level in self.levels(n)]

    def levels(self, n: Optional[int] = None) -> Iterator[PriceLevel]:
        """Iterate levels best first, at most n of them."""
        for i, level in enumerate(self._levels.values()):
            if n is not None and i >= n:
                break
            yield level

    def is_marketable(self, price: Optional[int], limit: Optional[int]) -> bool:
        """
        Whether an opposing order limited at `limit` crosses a level of this side at `price`.

        A limit of None (an unbounded market order) crosses every level.
        """
        if limit is None:
            return True
        if self.side == Side.SELL:
            return limit >= price
        return limit <= price

    def sweep(self, quantity: int, limit: Optional[int] = None) -> Tuple[int, int]:
        """
        Walk levels best first as an opposing order of `quantity` would.

        Returns:
            Tuple of (fillable quantity, notional) without mutating the side
        """
        remaining = quantity
        notional = 0
        for level in self._levels.values():
            if remaining == 0 or not self.is_marketable(level.price, limit):
                break
            take = min(remaining, level.total_quantity)
            notional += take * level.price
            remaining -= take
        return quantity - remaining, notional

    @property
    def order_count(self) -> int:
        return sum(level.order_count for level in self._levels.values())

    @property
    def total_quantity(self) -> int:
        return sum(level.total_quantity for level in self._levels.values())

    def __len__(self) -> int:
        """Number of price levels."""
        return len(self._levels)

    def __bool__(self) -> bool:
        return bool(self._levels)

    def __repr__(self) -> str:
        return f"OrderBookSide({self.side.value}, levels={len(self)}, best={self.best_price()})"
