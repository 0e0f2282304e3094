"""
Price level queue management with FIFO ordering

This module defines the PriceLevel class which maintains a queue of orders
at a single price level with strict time-priority (FIFO) enforcement.
"""

from collections import OrderedDict
from typing import Iterator, List, Optional

from .order import Order, Side


class PriceLevel:
    """
    Manages orders at a single price level with FIFO ordering.

    Orders are kept in an insertion-ordered dict keyed by order id, which
    gives O(1) append, O(1) removal by id and O(1) access to the oldest
    order. The aggregate remaining quantity is cached and kept in step with
    every add, remove and reduce.

    Attributes:
        price: The price level in ticks
        side: Buy or sell side
    """

    def __init__(self, price: int, side: Side):
        """
        Initialize a price level.

        Args:
            price: The price for this level
            side: The side (BUY or SELL) for this level
        """
        self.price: int = price
        self.side: Side = side
        self._orders: "OrderedDict[int, Order]" = OrderedDict()
        self._total_quantity: int = 0

    def add_order(self, order: Order) -> None:
        """
        Add an order to the end of the queue (FIFO).

        Args:
            order: Order to add

        Raises:
            ValueError: If order price/side doesn't match level or order already exists
        """
        if order.price != self.price:
            raise ValueError(
                f"Order price {order.price} doesn't match level price {self.price}"
            )

        if order.side != self.side:
            raise ValueError(
                f"Order side {order.side} doesn't match level side {self.side}"
            )

        if order.order_id in self._orders:
            raise ValueError(f"Order {order.order_id} already exists at this level")

        self._orders[order.order_id] = order
        self._total_quantity += order.remaining_qty

    def remove_order(self, order_id: int) -> Optional[Order]:
        """
        Remove an order from the queue.

        Args:
            order_id: ID of order to remove

        Returns:
            Removed order or None if not found
        """
        order = self._orders.pop(order_id, None)
        if order is not None:
            self._total_quantity -= order.remaining_qty
        return order

    def reduce(self, order: Order, quantity: int) -> None:
        """
        Decrement a resting order's remaining quantity in place.

        The order keeps its queue position; callers remove it once it
        reaches zero.
        """
        if order.order_id not in self._orders:
            raise ValueError(f"Order {order.order_id} is not at this level")
        order.reduce(quantity)
        self._total_quantity -= quantity

    def get_next_order(self) -> Optional[Order]:
        """
        Get the oldest order without removing it.

        Returns:
            Next order or None if queue is empty
        """
        if not self._orders:
            return None
        return next(iter(self._orders.values()))

    def is_empty(self) -> bool:
        return not self._orders

    @property
    def total_quantity(self) -> int:
        """Sum of remaining quantities at this level."""
        return self._total_quantity

    @property
    def order_count(self) -> int:
        return len(self._orders)

    @property
    def orders(self) -> List[Order]:
        """Orders in FIFO order."""
        return list(self._orders.values())

    def __iter__(self) -> Iterator[Order]:
        return iter(self._orders.values())

    def __contains__(self, order_id: int) -> bool:
        return order_id in self._orders

    def __repr__(self) -> str:
        return (
            f"PriceLevel(price={self.price}, side={self.side.value}, "
            f"orders={self.order_count}, quantity={self.total_quantity})"
        )

    def __len__(self) -> int:
        return len(self._orders)
