"""
Append-only trade log

The trade log records every fill of one market in execution order. There is
no API to mutate or delete entries, which keeps it a replayable audit trail.
"""

import threading
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterator, List, Optional

from .fill import Fill
from ..utils.exceptions import OrderBookException


@dataclass(frozen=True)
class TradeStats:
    """
    Statistics over a window of fills.

    Attributes:
        last_price: Price of the most recent fill (0 if there are none)
        volume: Sum of price * qty over the window
        base_volume: Sum of qty over the window
        high: Highest price in the window (last price when the window is empty)
        low: Lowest price in the window (last price when the window is empty)
        price_change_pct: (last - oldest in window) / oldest in window * 100
        trade_count: Number of fills in the window
    """
    last_price: int
    volume: int
    base_volume: int
    high: int
    low: int
    price_change_pct: Decimal
    trade_count: int


class TradeLog:
    """
    Append-only record of fills, queryable by time.

    Queries capture their bounds when called and then iterate without
    holding the lock; entries below the captured length never change.
    """

    def __init__(self):
        self._fills: List[Fill] = []
        self._timestamps: List[int] = []
        self._lock = threading.Lock()

    def record(self, fill: Fill) -> None:
        """
        Append a fill.

        Raises:
            OrderBookException: If the fill is older than the latest entry
        """
        with self._lock:
            if self._timestamps and fill.timestamp < self._timestamps[-1]:
                raise OrderBookException(
                    f"Fill {fill.fill_id} timestamp {fill.timestamp} precedes "
                    f"last recorded {self._timestamps[-1]}",
                    details={"fill_id": fill.fill_id}
                )
            self._fills.append(fill)
            self._timestamps.append(fill.timestamp)

    def query(
        self,
        since_timestamp: int = 0,
        limit: Optional[int] = None,
        until_timestamp: Optional[int] = None,
    ) -> Iterator[Fill]:
        """
        Fills in [since_timestamp, until_timestamp], most recent first.

        Args:
            since_timestamp: Inclusive lower bound in epoch milliseconds
            limit: Maximum number of fills to yield (None for no limit)
            until_timestamp: Inclusive upper bound (None for no bound)

        Returns:
            Lazy, finite iterator bounded by the log's length at call time
        """
        if limit is not None and limit < 0:
            raise ValueError(f"Limit cannot be negative, got {limit}")

        with self._lock:
            end = len(self._fills)
            if until_timestamp is not None:
                end = bisect_right(self._timestamps, until_timestamp, 0, end)
            start = bisect_left(self._timestamps, since_timestamp, 0, end)

        if limit is not None:
            start = max(start, end - limit)

        return self._iterate(start, end)

    def _iterate(self, start: int, end: int) -> Iterator[Fill]:
        for index in range(end - 1, start - 1, -1):
            yield self._fills[index]

    def last_fill(self) -> Optional[Fill]:
        with self._lock:
            return self._fills[-1] if self._fills else None

    def stats(self, since_timestamp: int, until_timestamp: Optional[int] = None) -> TradeStats:
        """
        Last price, volume, high/low and price change over fills in
        [since_timestamp, until_timestamp].

        Fills after until_timestamp are ignored, including for the last price.
        """
        window = list(self.query(since_timestamp, until_timestamp=until_timestamp))
        if window:
            last_price = window[0].price
        else:
            last = next(self.query(0, 1, until_timestamp), None)
            last_price = last.price if last is not None else 0

        if not window:
            return TradeStats(
                last_price=last_price,
                volume=0,
                base_volume=0,
                high=last_price,
                low=last_price,
                price_change_pct=Decimal("0"),
                trade_count=0,
            )

        oldest = window[-1]
        prices = [fill.price for fill in window]
        change = (Decimal(last_price - oldest.price) / Decimal(oldest.price)) * 100

        return TradeStats(
            last_price=last_price,
            volume=sum(fill.notional for fill in window),
            base_volume=sum(fill.qty for fill in window),
            high=max(prices),
            low=min(prices),
            price_change_pct=change,
            trade_count=len(window),
        )

    def __len__(self) -> int:
        return len(self._fills)

    def __iter__(self) -> Iterator[Fill]:
        """Replay fills oldest first."""
        with self._lock:
            end = len(self._fills)
        return (self._fills[i] for i in range(end))
