"""
Fill domain model and fee schedule

This module defines the Fill class representing one execution between a
resting maker order and an incoming taker order, and the FeeSchedule that
prices each fill.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple

from .order import Side


@dataclass(frozen=True)
class FeeSchedule:
    """
    Maker and taker fee rates applied to fill notional.

    A negative maker rate is a rebate. The rebate may never exceed what the
    taker pays, so the venue does not lose money on a fill.
    """

    maker_rate: Decimal = Decimal("-0.0003")
    taker_rate: Decimal = Decimal("0.0022")

    def __post_init__(self):
        if self.taker_rate < 0:
            raise ValueError(f"Taker fee rate cannot be negative, got {self.taker_rate}")
        if self.maker_rate + self.taker_rate < 0:
            raise ValueError(
                f"Maker rebate {self.maker_rate} exceeds taker fee {self.taker_rate}"
            )

    def calculate_fees(self, notional: int) -> Tuple[Decimal, Decimal]:
        """
        Calculate fees for a fill.

        Args:
            notional: Fill price times quantity

        Returns:
            Tuple of (maker_fee, taker_fee)
        """
        value = Decimal(notional)
        return value * self.maker_rate, value * self.taker_rate


@dataclass(frozen=True, slots=True)
class Fill:
    """
    Represents one execution.

    This class is immutable (frozen=True); fills in the trade log are a
    replayable audit trail and never change after creation.

    Attributes:
        fill_id: Engine-assigned sequence number
        symbol: Trading pair symbol
        taker_order_id: Incoming (aggressor) order id
        maker_order_id: Resting order id
        price: Execution price in ticks, always the maker's price
        qty: Executed quantity in lots
        timestamp: Execution time in epoch milliseconds
        taker_side: Side of the taker order
        taker_owner_id: Owner of the taker order
        maker_owner_id: Owner of the maker order
        taker_fee: Fee charged to the taker
        maker_fee: Fee charged to the maker (negative is a rebate)
    """

    fill_id: int
    symbol: str
    taker_order_id: int
    maker_order_id: int
    price: int
    qty: int
    timestamp: int
    taker_side: Side
    taker_owner_id: str
    maker_owner_id: str
    taker_fee: Decimal = Decimal("0")
    maker_fee: Decimal = Decimal("0")

    def __post_init__(self):
        if self.price <= 0:
            raise ValueError(f"Price must be positive, got {self.price}")

        if self.qty <= 0:
            raise ValueError(f"Quantity must be positive, got {self.qty}")

        if self.taker_fee < 0:
            raise ValueError(f"Taker fee cannot be negative, got {self.taker_fee}")

    @property
    def notional(self) -> int:
        """Price times quantity, in tick-lots."""
        return self.price * self.qty

    @property
    def maker_side(self) -> Side:
        return self.taker_side.opposite

    @property
    def taker_is_buyer(self) -> bool:
        return self.taker_side == Side.BUY

    def to_dict(self) -> dict:
        return {
            "fill_id": self.fill_id,
            "symbol": self.symbol,
            "taker_order_id": self.taker_order_id,
            "maker_order_id": self.maker_order_id,
            "price": self.price,
            "qty": self.qty,
            "timestamp": self.timestamp,
            "taker_side": self.taker_side.value,
            "taker_owner_id": self.taker_owner_id,
            "maker_owner_id": self.maker_owner_id,
            "taker_fee": str(self.taker_fee),
            "maker_fee": str(self.maker_fee),
        }

    def __repr__(self) -> str:
        return (
            f"Fill(id={self.fill_id}, {self.symbol}, {self.qty} @ {self.price}, "
            f"taker={self.taker_order_id} {self.taker_side.value}, "
            f"maker={self.maker_order_id})"
        )
