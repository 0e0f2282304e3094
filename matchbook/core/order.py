"""
Order domain model with enums and result types

This module defines the Order class and related enums representing
orders in the matching engine, plus the result objects returned
by submit and cancel operations.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, List, TYPE_CHECKING

from ..utils.exceptions import BaseMatchingEngineException, ErrorKind

if TYPE_CHECKING:
    from .fill import Fill


class OrderType(Enum):
    """Order type enumeration."""
    LIMIT = "LIMIT"
    IOC = "IOC"  # Immediate-Or-Cancel
    MARKET = "MARKET"
    POST_ONLY = "POST_ONLY"

    def __str__(self) -> str:
        return self.value

    @property
    def rests(self) -> bool:
        """Whether an unfilled remainder of this type rests on the book."""
        return self in (OrderType.LIMIT, OrderType.POST_ONLY)


class Side(Enum):
    """Order side enumeration."""
    BUY = "BUY"
    SELL = "SELL"

    def __str__(self) -> str:
        return self.value

    @property
    def opposite(self) -> "Side":
        return Side.SELL if self is Side.BUY else Side.BUY


class SelfTradeBehavior(Enum):
    """Policy applied when an incoming order meets a resting order of the same owner."""
    CANCEL_PROVIDE = "cancel_provide"  # Remove the resting order, no trade
    CANCEL_TAKE = "cancel_take"        # Discard the incoming remainder, no trade
    DECREMENT_TAKE = "decrement_take"  # Decrement both sides, no fill recorded

    def __str__(self) -> str:
        return self.value


class SubmitStatus(Enum):
    """Outcome of an order submission."""
    FILLED = "FILLED"
    PARTIALLY_FILLED = "PARTIALLY_FILLED"
    RESTING = "RESTING"
    UNFILLED = "UNFILLED"
    REJECTED = "REJECTED"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class Order:
    """
    Represents a resting or incoming order inside the matching engine.

    Prices are integer ticks and quantities integer lots. Everything except
    remaining_qty is fixed once the engine accepts the order.

    Attributes:
        order_id: Engine-assigned identifier, unique and monotonic per book
        symbol: Trading pair symbol (e.g., "SOL-USDC")
        side: Buy or sell
        order_type: LIMIT, IOC, MARKET or POST_ONLY
        price: Limit price in ticks (None for market orders)
        original_qty: Quantity at submission in lots
        remaining_qty: Quantity still open in lots
        timestamp: Acceptance time in epoch milliseconds
        owner_id: Owner of the order, used for self-trade checks
        client_id: Optional owner-chosen identifier
    """

    order_id: int
    symbol: str
    side: Side
    order_type: OrderType
    price: Optional[int]
    original_qty: int
    timestamp: int
    owner_id: str
    client_id: Optional[int] = None
    remaining_qty: int = field(init=False)

    def __post_init__(self):
        self.remaining_qty = self.original_qty

        if self.original_qty <= 0:
            raise ValueError(f"Quantity must be positive, got {self.original_qty}")
        if self.price is not None and self.price <= 0:
            raise ValueError(f"Price must be positive, got {self.price}")
        if self.price is None and self.order_type.rests:
            raise ValueError(f"{self.order_type} orders require a price")

    def reduce(self, quantity: int) -> None:
        """
        Decrement the remaining quantity.

        Raises:
            ValueError: If quantity is not positive or exceeds the remainder
        """
        if quantity <= 0:
            raise ValueError(f"Reduction must be positive, got {quantity}")
        if quantity > self.remaining_qty:
            raise ValueError(
                f"Reduction {quantity} exceeds remaining {self.remaining_qty}"
            )
        self.remaining_qty -= quantity

    def copy(self) -> "Order":
        """Detached copy handed to callers outside the engine."""
        return copy.copy(self)

    @property
    def is_buy(self) -> bool:
        return self.side == Side.BUY

    @property
    def is_fully_consumed(self) -> bool:
        return self.remaining_qty == 0

    def __repr__(self) -> str:
        price_str = str(self.price) if self.price is not None else "MARKET"
        return (
            f"Order(id={self.order_id}, {self.side.value} {self.remaining_qty}/"
            f"{self.original_qty} {self.symbol} @ {price_str}, "
            f"type={self.order_type.value}, owner={self.owner_id})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "symbol": self.symbol,
            "side": self.side.value,
            "order_type": self.order_type.value,
            "price": self.price,
            "original_qty": self.original_qty,
            "remaining_qty": self.remaining_qty,
            "timestamp": self.timestamp,
            "owner_id": self.owner_id,
            "client_id": self.client_id,
        }


@dataclass
class SubmitResult:
    """
    Result of an order submission.

    Attributes:
        status: Final status of the submission
        order_id: Engine id of the incoming order (None when rejected)
        fills: Fills generated by this submission, in execution order
        resting_order_id: Id of the order left on the book, if any
        filled_qty: Quantity executed through fills
        unfilled_qty: Quantity neither filled nor resting
        error: Error kind for rejected submissions
        message: Human-readable summary
    """
    status: SubmitStatus
    order_id: Optional[int] = None
    fills: List["Fill"] = field(default_factory=list)
    resting_order_id: Optional[int] = None
    filled_qty: int = 0
    unfilled_qty: int = 0
    error: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def rejected(cls, exc: BaseMatchingEngineException) -> "SubmitResult":
        return cls(status=SubmitStatus.REJECTED, error=exc.kind, message=exc.message)

    def is_successful(self) -> bool:
        return self.status != SubmitStatus.REJECTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "order_id": self.order_id,
            "fills": [fill.to_dict() for fill in self.fills],
            "resting_order_id": self.resting_order_id,
            "filled_qty": self.filled_qty,
            "unfilled_qty": self.unfilled_qty,
            "error": self.error.value if self.error else None,
            "message": self.message,
        }


@dataclass
class CancelResult:
    """Result of a cancel request."""
    success: bool
    order_id: int
    cancelled_qty: int = 0
    error: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def failed(cls, order_id: int, exc: BaseMatchingEngineException) -> "CancelResult":
        return cls(success=False, order_id=order_id, error=exc.kind, message=exc.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "order_id": self.order_id,
            "cancelled_qty": self.cancelled_qty,
            "error": self.error.value if self.error else None,
            "message": self.message,
        }
