"""
Order book data structure with price-time priority

This module holds both sides of a market together with the order-id index
used to locate resting orders for cancellation.
"""

from typing import Optional, Dict, List, Tuple

from .order import Order, Side
from .book_side import OrderBookSide
from ..utils.exceptions import (
    DuplicateOrderException,
    OrderBookException,
)


class OrderBook:
    """
    Manages the resting orders of one trading pair.

    Bids are sorted descending and asks ascending (see OrderBookSide), and
    every resting order is registered by id so cancels are O(1) lookups
    followed by O(1) removal from its level.

    Attributes:
        symbol: Trading pair symbol
        bids: Bid side (best = highest)
        asks: Ask side (best = lowest)
        order_registry: Resting orders by ID
    """

    def __init__(self, symbol: str):
        """
        Initialize an order book for a symbol.

        Args:
            symbol: Trading pair symbol (e.g., "SOL-USDC")
        """
        self.symbol: str = symbol
        self.bids: OrderBookSide = OrderBookSide(Side.BUY)
        self.asks: OrderBookSide = OrderBookSide(Side.SELL)
        self.order_registry: Dict[int, Order] = {}

    def side(self, side: Side) -> OrderBookSide:
        return self.bids if side == Side.BUY else self.asks

    def opposite(self, side: Side) -> OrderBookSide:
        return self.asks if side == Side.BUY else self.bids

    def add_order(self, order: Order) -> None:
        """
        Rest an order on the book.

        Args:
            order: Order to add

        Raises:
            DuplicateOrderException: If order already exists
            OrderBookException: If order cannot rest
        """
        if order.order_id in self.order_registry:
            raise DuplicateOrderException(
                f"Order {order.order_id} already exists in book",
                details={"order_id": order.order_id}
            )

        if order.remaining_qty <= 0:
            raise OrderBookException(
                "Cannot add order with no remaining quantity",
                details={"order_id": order.order_id}
            )

        if order.price is None:
            raise OrderBookException(
                "Cannot add order without price to book",
                details={"order_id": order.order_id, "order_type": order.order_type.value}
            )

        self.side(order.side).insert(order)
        self.order_registry[order.order_id] = order

    def remove_order(self, order_id: int) -> Optional[Order]:
        """
        Remove an order from the book.

        Args:
            order_id: ID of order to remove

        Returns:
            Removed order or None if not found
        """
        order = self.order_registry.pop(order_id, None)
        if order is None:
            return None

        self.side(order.side).remove_order(order)
        return order

    def get_order(self, order_id: int) -> Optional[Order]:
        return self.order_registry.get(order_id)

    def find_by_client_id(self, owner_id: str, client_id: int) -> Optional[Order]:
        """Oldest resting order of an owner carrying the given client id."""
        for order in self.order_registry.values():
            if order.owner_id == owner_id and order.client_id == client_id:
                return order
        return None

    def orders_for_owner(self, owner_id: Optional[str] = None) -> List[Order]:
        """Resting orders, optionally filtered by owner, in order-id sequence."""
        return [
            order for order in self.order_registry.values()
            if owner_id is None or order.owner_id == owner_id
        ]

    @property
    def best_bid(self) -> Optional[int]:
        return self.bids.best_price()

    @property
    def best_ask(self) -> Optional[int]:
        return self.asks.best_price()

    def get_bbo(self) -> Tuple[Optional[int], Optional[int]]:
        return self.best_bid, self.best_ask

    @property
    def spread(self) -> Optional[int]:
        """Bid-ask spread in ticks."""
        bid, ask = self.get_bbo()
        if bid is None or ask is None:
            return None
        return ask - bid

    def check_integrity(self) -> None:
        """
        Verify structural invariants.

        Raises:
            OrderBookException: If any level is empty, an order sits on the
                wrong side or price, or the index disagrees with the levels
        """
        seen = set()
        for book_side in (self.bids, self.asks):
            for level in book_side.levels():
                if level.is_empty():
                    raise OrderBookException(f"Empty level {level.price} on {book_side.side}")
                if level.total_quantity != sum(o.remaining_qty for o in level):
                    raise OrderBookException(f"Aggregate mismatch at level {level.price}")
                for order in level:
                    if order.order_id in seen:
                        raise OrderBookException(f"Order {order.order_id} appears twice")
                    if order.side != book_side.side or order.price != level.price:
                        raise OrderBookException(f"Order {order.order_id} is misplaced")
                    if not 0 < order.remaining_qty <= order.original_qty:
                        raise OrderBookException(f"Order {order.order_id} has invalid quantity")
                    seen.add(order.order_id)
        if seen != set(self.order_registry):
            raise OrderBookException("Order index out of sync with price levels")
        bid, ask = self.get_bbo()
        if bid is not None and ask is not None and bid >= ask:
            raise OrderBookException(f"Book is crossed: bid {bid} >= ask {ask}")

    def __len__(self) -> int:
        return len(self.order_registry)

    def __repr__(self) -> str:
        return (
            f"OrderBook({self.symbol}: "
            f"{len(self.bids)} bid levels, {len(self.asks)} ask levels, "
            f"BBO={self.best_bid}/{self.best_ask}, "
            f"{len(self.order_registry)} orders)"
        )
