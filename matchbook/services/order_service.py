"""
Order Service - Business logic layer for order operations.

This service accepts orders in human units, converts them to engine ticks and
lots, routes them to the symbol's engine and turns typed engine errors into
result objects.
"""

import logging
from decimal import Decimal
from typing import Optional, Dict, Any, List, Union

from pydantic import ValidationError

from matchbook.core.market import MarketSpec
from matchbook.core.matching_engine import check_request
from matchbook.core.order import CancelResult, OrderType, Side, SubmitResult
from matchbook.core.registry import MarketRegistry
from matchbook.core.requests import CancelRequest, NewOrderRequest
from matchbook.utils.exceptions import (
    BaseMatchingEngineException,
    ErrorKind,
    InvalidOrderException,
)
from matchbook.utils.validators import sanitize_decimal, validate_positive, validate_symbol

logger = logging.getLogger(__name__)

Number = Union[str, int, float, Decimal]


class OrderService:
    """
    Service class for handling order operations.

    Submissions never raise for business errors: they come back as
    SubmitResult(status=REJECTED) or CancelResult(success=False) carrying the
    error kind. Retrying is left to the caller.
    """

    def __init__(self, registry: MarketRegistry):
        """
        Initialize order service.

        Args:
            registry: Registry of per-symbol matching engines
        """
        self.registry = registry
        self.logger = logging.getLogger(f"{__name__}.OrderService")

    def place_limit_order(
        self,
        symbol: str,
        side: Union[str, Side],
        price: Number,
        size: Number,
        owner_id: str,
        order_type: Union[str, OrderType] = "limit",
        client_id: Optional[int] = None,
    ) -> SubmitResult:
        """
        Place a priced order (limit, ioc or post-only).

        Args:
            symbol: Trading pair symbol (e.g., "SOL-USDC")
            side: buy or sell
            price: Limit price in quote currency
            size: Base size
            owner_id: Owner of the order
            order_type: limit, ioc or postOnly
            client_id: Owner-chosen identifier

        Returns:
            SubmitResult (REJECTED with an error kind on failure)
        """
        try:
            symbol = validate_symbol(symbol)
            market = self._market(symbol)
            max_price = market.ticks_to_price(self.registry.settings.max_price_ticks)
            price_value = validate_positive(sanitize_decimal(price, "price"), "price", max_price)
            ticks = market.price_to_ticks(price_value)
            lots = self._to_lots(market, size)
            request = NewOrderRequest(
                symbol=symbol,
                side=side,
                price=ticks,
                qty=lots,
                order_type=order_type,
                owner_id=owner_id,
                client_id=client_id,
            )
        except BaseMatchingEngineException as e:
            return self._rejected(e)
        except ValidationError as e:
            return self._rejected(InvalidOrderException(f"Invalid order request: {e}"))

        return self.submit(request)

    def place_market_order(
        self,
        symbol: str,
        side: Union[str, Side],
        size: Number,
        owner_id: str,
        client_id: Optional[int] = None,
    ) -> SubmitResult:
        """
        Place a market order, bounded by the engine's slippage policy.

        Returns:
            SubmitResult (REJECTED with an error kind on failure)
        """
        try:
            symbol = validate_symbol(symbol)
            market = self._market(symbol)
            request = NewOrderRequest(
                symbol=symbol,
                side=side,
                qty=self._to_lots(market, size),
                order_type=OrderType.MARKET,
                owner_id=owner_id,
                client_id=client_id,
            )
        except BaseMatchingEngineException as e:
            return self._rejected(e)
        except ValidationError as e:
            return self._rejected(InvalidOrderException(f"Invalid order request: {e}"))

        return self.submit(request)

    def submit(self, request: NewOrderRequest) -> SubmitResult:
        """
        Route a tick/lot request to its engine.

        The engine for a new symbol is created only once the request passes
        validation.

        Returns:
            SubmitResult (REJECTED with an error kind on failure)
        """
        try:
            check_request(request)
            symbol = validate_symbol(request.symbol)
            if symbol != request.symbol:
                request = request.model_copy(update={"symbol": symbol})
            engine = self.registry.get_or_create(request.symbol)
            result = engine.submit(request)
        except BaseMatchingEngineException as e:
            return self._rejected(e)

        self.logger.info(
            f"Order {result.order_id} on {request.symbol}: {result.status.value}, "
            f"filled {result.filled_qty}/{request.qty}, fills: {len(result.fills)}"
        )
        return result

    def cancel_order(
        self,
        symbol: str,
        order_id: int,
        owner_id: Optional[str] = None,
    ) -> CancelResult:
        """
        Cancel a resting order.

        Returns:
            CancelResult (success=False with ORDER_NOT_FOUND for unknown ids)
        """
        try:
            request = CancelRequest(symbol=symbol, order_id=order_id, owner_id=owner_id)
            engine = self.registry.get(request.symbol)
            result = engine.cancel(request.order_id, request.owner_id)
        except BaseMatchingEngineException as e:
            self.logger.warning(f"Cancel of order {order_id} on {symbol} failed: {e.message}")
            return CancelResult.failed(order_id, e)
        except ValidationError as e:
            return CancelResult.failed(order_id, InvalidOrderException(f"Invalid cancel request: {e}"))

        self.logger.info(f"Order {order_id} on {symbol} cancelled ({result.cancelled_qty} lots)")
        return result

    def get_open_orders(self, symbol: str, owner_id: str) -> List[Dict[str, Any]]:
        """
        Resting orders of an owner in human units.

        Returns:
            List of order dictionaries (empty for unknown symbols)
        """
        symbol = validate_symbol(symbol)
        if symbol not in self.registry:
            return []
        engine = self.registry.get(symbol)
        market = engine.market
        return [
            {
                "order_id": order.order_id,
                "symbol": symbol,
                "side": order.side.value.lower(),
                "order_type": order.order_type.value.lower(),
                "price": market.ticks_to_price(order.price),
                "size": market.lots_to_size(order.remaining_qty),
                "original_size": market.lots_to_size(order.original_qty),
                "client_id": order.client_id,
                "timestamp": order.timestamp,
            }
            for order in engine.open_orders(owner_id)
        ]

    def estimate_market_price(self, symbol: str, side: Union[str, Side], size: Number) -> Decimal:
        """
        Average price a market order of `size` would pay right now.

        Raises:
            InvalidOrderException: If the inputs are invalid
            InsufficientLiquidityException: If the book cannot fill the size
        """
        symbol = validate_symbol(symbol)
        engine = self.registry.get(symbol)
        lots = self._to_lots(engine.market, size)
        if not isinstance(side, Side):
            try:
                side = Side(str(side).strip().upper())
            except ValueError:
                raise InvalidOrderException(f"Invalid side: {side}", details={"side": side})
        vwap_ticks = engine.snapshot().estimate_fill_price(side, lots)
        return vwap_ticks * engine.market.tick_size

    def _market(self, symbol: str) -> MarketSpec:
        return self.registry.market_for(symbol)

    def _to_lots(self, market: MarketSpec, size: Number) -> int:
        max_size = market.lots_to_size(self.registry.settings.max_quantity_lots)
        value = validate_positive(sanitize_decimal(size, "size"), "size", max_size)
        return market.size_to_lots(value)

    def _rejected(self, exc: BaseMatchingEngineException) -> SubmitResult:
        if exc.kind == ErrorKind.INTERNAL:
            self.logger.error(f"Error submitting order: {exc.message}", exc_info=exc)
        else:
            self.logger.warning(f"Order rejected ({exc.kind.value}): {exc.message}")
        return SubmitResult.rejected(exc)
