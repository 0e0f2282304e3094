"""
Market specification: tick and lot sizes for a trading pair.

The engine works in integer ticks (price) and lots (base size). This module
converts between those units and the human decimal prices and sizes that
callers use.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from ..utils.exceptions import InvalidOrderException


@dataclass(frozen=True)
class MarketSpec:
    """
    Unit conventions of one market.

    Attributes:
        symbol: Trading pair symbol
        tick_size: Quote price of one tick
        lot_size: Base size of one lot
    """

    symbol: str
    tick_size: Decimal = Decimal("0.01")
    lot_size: Decimal = Decimal("0.001")

    def __post_init__(self):
        if not self.symbol or not self.symbol.strip():
            raise ValueError("Symbol cannot be empty")
        if self.tick_size <= 0:
            raise ValueError(f"Tick size must be positive, got {self.tick_size}")
        if self.lot_size <= 0:
            raise ValueError(f"Lot size must be positive, got {self.lot_size}")

    def price_to_ticks(self, price: Decimal) -> int:
        """
        Convert a decimal price to ticks, rounding half up.

        Raises:
            InvalidOrderException: If the price rounds to zero or below
        """
        ticks = int((price / self.tick_size).to_integral_value(rounding=ROUND_HALF_UP))
        if ticks <= 0:
            raise InvalidOrderException(
                f"Price {price} is below one tick ({self.tick_size})",
                details={"symbol": self.symbol, "price": str(price)}
            )
        return ticks

    def size_to_lots(self, size: Decimal) -> int:
        """
        Convert a decimal base size to lots, rounding half up.

        Raises:
            InvalidOrderException: If the size rounds to zero or below
        """
        lots = int((size / self.lot_size).to_integral_value(rounding=ROUND_HALF_UP))
        if lots <= 0:
            raise InvalidOrderException(
                f"Size {size} is below one lot ({self.lot_size})",
                details={"symbol": self.symbol, "size": str(size)}
            )
        return lots

    def ticks_to_price(self, ticks: int) -> Decimal:
        return Decimal(ticks) * self.tick_size

    def lots_to_size(self, lots: int) -> Decimal:
        return Decimal(lots) * self.lot_size

    def notional_to_quote(self, notional) -> Decimal:
        """Convert a ticks-times-lots amount (or fee on it) to quote currency."""
        return Decimal(notional) * self.tick_size * self.lot_size
