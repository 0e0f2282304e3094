"""
Core matching engine with price-time priority.

One engine owns the book and trade log of a single trading pair. Incoming
orders match against the opposing side at the resting orders' prices, and
unfilled limit remainders rest at the tail of their price level.
"""

import itertools
import threading
import time
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR
from typing import Callable, Dict, List, Optional, Tuple

from .order import (
    CancelResult,
    Order,
    OrderType,
    SelfTradeBehavior,
    Side,
    SubmitResult,
    SubmitStatus,
)
from .fill import FeeSchedule, Fill
from .market import MarketSpec
from .order_book import OrderBook
from .price_level import PriceLevel
from .requests import NewOrderRequest
from .snapshot import Depth, SnapshotView
from .trade_log import TradeLog
from ..utils.exceptions import (
    InvalidOrderException,
    InvalidSymbolException,
    OrderBookException,
    OrderNotFoundException,
    PostOnlyWouldCrossException,
)
from ..utils.logger import get_logger


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class MatchingEngine:
    """
    Matching engine for one trading pair.

    - Price-time priority: best price first, FIFO within a price
    - Maker price: fills execute at the resting order's price
    - Limit and post-only remainders rest; IOC and market remainders are discarded
    - Configurable self-trade behavior and maker/taker fees

    All mutations and snapshot reads are serialized by one lock; callers only
    ever receive copies of engine-owned orders.
    """

    METRICS_LOG_INTERVAL = 1000  # Orders between performance log lines

    def __init__(
        self,
        symbol: str,
        market: Optional[MarketSpec] = None,
        self_trade_behavior: SelfTradeBehavior = SelfTradeBehavior.DECREMENT_TAKE,
        fee_schedule: Optional[FeeSchedule] = None,
        market_slippage_bound: Optional[Decimal] = None,
        clock: Optional[Callable[[], int]] = None,
        log_level: str = "INFO",
    ):
        """
        Initialize the matching engine.

        Args:
            symbol: Trading pair symbol
            market: Tick/lot conventions (defaults to MarketSpec(symbol))
            self_trade_behavior: Policy for orders meeting their owner's resting orders
            fee_schedule: Maker/taker fee rates
            market_slippage_bound: Bound around the estimated fill price for
                market orders (None lets market orders sweep the book)
            clock: Source of epoch milliseconds
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if market is not None and market.symbol != symbol:
            raise ValueError(f"Market spec {market.symbol} does not match symbol {symbol}")
        if market_slippage_bound is not None and market_slippage_bound < 0:
            raise ValueError(f"Slippage bound cannot be negative, got {market_slippage_bound}")

        self.symbol: str = symbol
        self.market: MarketSpec = market or MarketSpec(symbol)
        self.self_trade_behavior: SelfTradeBehavior = self_trade_behavior
        self.fee_schedule: FeeSchedule = fee_schedule or FeeSchedule()
        self.market_slippage_bound: Optional[Decimal] = market_slippage_bound
        self.order_book: OrderBook = OrderBook(symbol)
        self.trade_log: TradeLog = TradeLog()
        self.statistics: Dict[str, int] = {
            "orders_processed": 0,
            "orders_resting": 0,
            "fills_executed": 0,
            "total_volume": 0,
            "orders_filled": 0,
            "orders_partial": 0,
            "orders_cancelled": 0,
            "self_trades_prevented": 0,
        }
        self.lock = threading.Lock()
        self.logger = get_logger(log_level=log_level)

        self._clock = clock or _now_ms
        self._order_ids = itertools.count(1)
        self._fill_ids = itertools.count(1)
        self._last_timestamp = 0
        self._order_latencies: List[float] = []

    def submit(self, request: NewOrderRequest) -> SubmitResult:
        """
        Submit an order.

        Args:
            request: Order request in ticks and lots

        Returns:
            SubmitResult with fills, resting order id and status

        Raises:
            InvalidOrderException: If the request fails validation
            PostOnlyWouldCrossException: If a post-only order would take liquidity
        """
        start_time = time.perf_counter()
        self._validate_request(request)

        with self.lock:
            if request.order_type == OrderType.POST_ONLY:
                best = self.order_book.opposite(request.side).best_price()
                if best is not None and self.order_book.opposite(request.side).is_marketable(best, request.price):
                    raise PostOnlyWouldCrossException(
                        f"Post-only order at {request.price} would cross {best}",
                        details={"symbol": self.symbol, "price": request.price, "best": best}
                    )

            limit_price = self._resolve_limit_price(request)
            order = Order(
                order_id=next(self._order_ids),
                symbol=self.symbol,
                side=request.side,
                order_type=request.order_type,
                price=request.price if request.order_type != OrderType.MARKET else None,
                original_qty=request.qty,
                timestamp=self._next_timestamp(),
                owner_id=request.owner_id,
                client_id=request.client_id,
            )
            self.logger.log_order_submission(
                order.order_id,
                order.symbol,
                order.order_type.value,
                order.side.value,
                order.original_qty,
                order.price,
                order.owner_id,
            )

            try:
                fills, take_cancelled = self._match(order, limit_price)

                resting_order_id = None
                if order.remaining_qty > 0 and order.order_type.rests and not take_cancelled:
                    self.order_book.add_order(order)
                    resting_order_id = order.order_id
            except OrderBookException as e:
                self.logger.log_error(
                    f"Book invariant violated while matching order {order.order_id}",
                    exception=e,
                    order_id=order.order_id,
                    symbol=self.symbol,
                )
                raise

            result = self._build_result(order, fills, resting_order_id)
            self._update_statistics(result)
            self._order_latencies.append((time.perf_counter() - start_time) * 1000)
            if self.statistics["orders_processed"] % self.METRICS_LOG_INTERVAL == 0:
                self._log_performance_metrics()

            return result

    def cancel(self, order_id: int, owner_id: Optional[str] = None) -> CancelResult:
        """
        Cancel a resting order.

        Args:
            order_id: ID of the order to cancel
            owner_id: When given, the order must belong to this owner

        Returns:
            CancelResult with the cancelled quantity

        Raises:
            OrderNotFoundException: If no such resting order exists (including
                orders already filled or cancelled)
        """
        with self.lock:
            order = self.order_book.get_order(order_id)
            if order is None or (owner_id is not None and order.owner_id != owner_id):
                raise OrderNotFoundException(
                    f"Order {order_id} not found",
                    details={"symbol": self.symbol, "order_id": order_id}
                )
            return self._cancel_resting(order)

    def cancel_by_client_id(self, owner_id: str, client_id: int) -> CancelResult:
        """
        Cancel the oldest resting order of an owner carrying client_id.

        Raises:
            OrderNotFoundException: If the owner has no such resting order
        """
        with self.lock:
            order = self.order_book.find_by_client_id(owner_id, client_id)
            if order is None:
                raise OrderNotFoundException(
                    f"No resting order with client id {client_id} for {owner_id}",
                    details={"symbol": self.symbol, "client_id": client_id}
                )
            return self._cancel_resting(order)

    def get_order(self, order_id: int) -> Optional[Order]:
        """Copy of a resting order, or None."""
        with self.lock:
            order = self.order_book.get_order(order_id)
            return order.copy() if order is not None else None

    def open_orders(self, owner_id: Optional[str] = None) -> List[Order]:
        """Copies of resting orders, optionally for one owner."""
        with self.lock:
            return [order.copy() for order in self.order_book.orders_for_owner(owner_id)]

    def snapshot(self, levels: Optional[int] = None) -> SnapshotView:
        """Consistent copy of the top `levels` of both sides (all when None)."""
        with self.lock:
            return SnapshotView.capture(self.order_book, self._clock(), levels)

    def depth(self, n: int) -> Depth:
        return self.snapshot(n).depth(n)

    def spread(self) -> Optional[int]:
        return self.snapshot(1).spread()

    def recent_fills(self, limit: Optional[int] = None, since_timestamp: int = 0) -> List[Fill]:
        """Most recent fills first."""
        return list(self.trade_log.query(since_timestamp, limit))

    def get_statistics(self) -> Dict[str, object]:
        with self.lock:
            stats: Dict[str, object] = dict(self.statistics)
            stats["resting_orders"] = len(self.order_book)

            if self._order_latencies:
                stats["avg_latency_ms"] = sum(self._order_latencies) / len(self._order_latencies)
                stats["max_latency_ms"] = max(self._order_latencies)
                stats["min_latency_ms"] = min(self._order_latencies)

            return stats

    # Private matching methods

    def _validate_request(self, request: NewOrderRequest) -> None:
        """Reject malformed requests before any state changes."""
        details = {"symbol": request.symbol, "owner_id": request.owner_id}

        if request.symbol != self.symbol:
            raise InvalidSymbolException(
                f"Order for {request.symbol} submitted to {self.symbol} engine",
                details=details
            )
        check_request(request)
        if request.order_type == OrderType.MARKET and request.price is not None:
            self.logger.warning(
                f"Market order from {request.owner_id} carries a price; ignoring it",
                symbol=self.symbol
            )

    def _resolve_limit_price(self, request: NewOrderRequest) -> Optional[int]:
        """
        Limit applied while matching.

        Market orders get a protective limit around the VWAP of the liquidity
        they would consume when a slippage bound is configured.
        """
        if request.order_type != OrderType.MARKET:
            return request.price
        if self.market_slippage_bound is None:
            return None

        available, notional = self.order_book.opposite(request.side).sweep(request.qty)
        if available == 0:
            return None

        vwap = Decimal(notional) / Decimal(available)
        if request.side == Side.BUY:
            bound = vwap * (1 + self.market_slippage_bound)
            return int(bound.to_integral_value(rounding=ROUND_CEILING))
        bound = vwap * (1 - self.market_slippage_bound)
        return max(1, int(bound.to_integral_value(rounding=ROUND_FLOOR)))

    def _match(self, taker: Order, limit_price: Optional[int]) -> Tuple[List[Fill], bool]:
        """
        Match an incoming order against the opposing side.

        Returns:
            Tuple of (fills, take_cancelled) where take_cancelled means the
            self-trade policy discarded the incoming remainder
        """
        fills: List[Fill] = []
        opposite = self.order_book.opposite(taker.side)

        while taker.remaining_qty > 0:
            level = opposite.best_level()
            if level is None or not opposite.is_marketable(level.price, limit_price):
                break

            maker = level.get_next_order()
            if maker.owner_id == taker.owner_id:
                if not self._prevent_self_trade(taker, maker, level):
                    return fills, True
                continue

            quantity = min(taker.remaining_qty, maker.remaining_qty)
            fills.append(self._execute_match(taker, maker, level, quantity))

        return fills, False

    def _execute_match(self, taker: Order, maker: Order, level: PriceLevel, quantity: int) -> Fill:
        """
        Execute a match between two orders at the maker's price.

        Args:
            taker: Incoming order (aggressor)
            maker: Resting order at the head of level
            level: Level holding the maker
            quantity: Quantity to match

        Returns:
            Fill recorded in the trade log
        """
        level.reduce(maker, quantity)
        taker.reduce(quantity)

        if maker.is_fully_consumed:
            self.order_book.remove_order(maker.order_id)

        maker_fee, taker_fee = self.fee_schedule.calculate_fees(level.price * quantity)
        fill = Fill(
            fill_id=next(self._fill_ids),
            symbol=self.symbol,
            taker_order_id=taker.order_id,
            maker_order_id=maker.order_id,
            price=level.price,
            qty=quantity,
            timestamp=taker.timestamp,
            taker_side=taker.side,
            taker_owner_id=taker.owner_id,
            maker_owner_id=maker.owner_id,
            taker_fee=taker_fee,
            maker_fee=maker_fee,
        )
        self.trade_log.record(fill)

        self.statistics["fills_executed"] += 1
        self.statistics["total_volume"] += quantity

        self.logger.log_fill(
            fill.fill_id,
            fill.symbol,
            fill.price,
            fill.qty,
            fill.taker_side.value,
            fill.maker_order_id,
            fill.taker_order_id,
            fill.taker_fee,
            fill.maker_fee,
        )

        return fill

    def _prevent_self_trade(self, taker: Order, maker: Order, level: PriceLevel) -> bool:
        """
        Apply the self-trade policy to a taker meeting its owner's resting order.

        Returns:
            True if matching continues, False if the taker is cancelled
        """
        self.statistics["self_trades_prevented"] += 1
        behavior = self.self_trade_behavior

        if behavior == SelfTradeBehavior.CANCEL_TAKE:
            quantity = taker.remaining_qty
        elif behavior == SelfTradeBehavior.CANCEL_PROVIDE:
            quantity = maker.remaining_qty
            self.order_book.remove_order(maker.order_id)
        else:
            quantity = min(taker.remaining_qty, maker.remaining_qty)
            level.reduce(maker, quantity)
            taker.reduce(quantity)
            if maker.is_fully_consumed:
                self.order_book.remove_order(maker.order_id)

        self.logger.log_self_trade(
            behavior.value,
            self.symbol,
            taker.order_id,
            maker.order_id,
            taker.owner_id,
            quantity,
        )
        return behavior != SelfTradeBehavior.CANCEL_TAKE

    def _cancel_resting(self, order: Order) -> CancelResult:
        cancelled_qty = order.remaining_qty
        self.order_book.remove_order(order.order_id)
        self.statistics["orders_cancelled"] += 1
        self.logger.log_order_cancellation(order.order_id, self.symbol, cancelled_qty)
        return CancelResult(
            success=True,
            order_id=order.order_id,
            cancelled_qty=cancelled_qty,
            message=f"Order {order.order_id} cancelled",
        )

    def _build_result(
        self,
        order: Order,
        fills: List[Fill],
        resting_order_id: Optional[int],
    ) -> SubmitResult:
        filled_qty = sum(fill.qty for fill in fills)
        resting_qty = order.remaining_qty if resting_order_id is not None else 0

        if filled_qty == order.original_qty:
            status = SubmitStatus.FILLED
            message = f"Order fully filled: {filled_qty}"
        elif filled_qty > 0:
            status = SubmitStatus.PARTIALLY_FILLED
            message = f"Order partially filled: {filled_qty}/{order.original_qty}"
        elif resting_order_id is not None:
            status = SubmitStatus.RESTING
            message = "Order added to book"
        else:
            status = SubmitStatus.UNFILLED
            message = "Order not filled"

        return SubmitResult(
            status=status,
            order_id=order.order_id,
            fills=fills,
            resting_order_id=resting_order_id,
            filled_qty=filled_qty,
            unfilled_qty=order.original_qty - filled_qty - resting_qty,
            message=message,
        )

    def _update_statistics(self, result: SubmitResult) -> None:
        self.statistics["orders_processed"] += 1
        if result.status == SubmitStatus.FILLED:
            self.statistics["orders_filled"] += 1
        elif result.status == SubmitStatus.PARTIALLY_FILLED:
            self.statistics["orders_partial"] += 1
        if result.resting_order_id is not None:
            self.statistics["orders_resting"] += 1

    def _next_timestamp(self) -> int:
        """Clock reading, never earlier than the previous one."""
        self._last_timestamp = max(self._clock(), self._last_timestamp)
        return self._last_timestamp

    def _log_performance_metrics(self) -> None:
        if not self._order_latencies:
            return

        self.logger.log_performance_metrics(
            self.statistics["orders_processed"],
            self.statistics["fills_executed"],
            sum(self._order_latencies) / len(self._order_latencies),
            max(self._order_latencies),
        )
        self._order_latencies = []

    def __repr__(self) -> str:
        return f"MatchingEngine({self.symbol}, {self.order_book!r})"


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_request(request: NewOrderRequest) -> None:
    """
    Check the parts of an order request that need no book state.

    Raises:
        InvalidOrderException: If side, type, quantity, price or owner is invalid
    """
    details = {"symbol": request.symbol, "owner_id": request.owner_id}

    if not isinstance(request.side, Side):
        raise InvalidOrderException(f"Invalid side: {request.side}", details=details)
    if not isinstance(request.order_type, OrderType):
        raise InvalidOrderException(f"Invalid order type: {request.order_type}", details=details)
    if not _is_int(request.qty) or request.qty <= 0:
        raise InvalidOrderException(f"Quantity must be positive, got {request.qty}", details=details)
    if request.order_type != OrderType.MARKET and (
        request.price is None or not _is_int(request.price) or request.price <= 0
    ):
        raise InvalidOrderException(f"Price must be positive, got {request.price}", details=details)
    if not request.owner_id:
        raise InvalidOrderException("Owner id is required", details=details)
