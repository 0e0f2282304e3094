"""
Unit tests for domain models, request parsing, validators and configuration.
"""

import json
import logging
from decimal import Decimal

import pytest
from pydantic import ValidationError

from matchbook.config import Settings
from matchbook.core.fill import FeeSchedule, Fill
from matchbook.core.market import MarketSpec
from matchbook.core.order import (
    CancelResult,
    Order,
    OrderType,
    Side,
    SubmitResult,
    SubmitStatus,
)
from matchbook.core.requests import CancelRequest, NewOrderRequest
from matchbook.utils.exceptions import (
    ErrorKind,
    InvalidOrderException,
    InvalidSymbolException,
    OrderNotFoundException,
    PostOnlyWouldCrossException,
)
from matchbook.utils.logger import JSONFormatter
from matchbook.utils.validators import sanitize_decimal, validate_positive, validate_symbol


class TestOrder:
    """Tests for Order model."""

    def test_order_creation(self):
        order = Order(1, "SOL-USDC", Side.BUY, OrderType.LIMIT, 100, 10, 1000, "alice")

        assert order.remaining_qty == 10
        assert order.is_buy
        assert not order.is_fully_consumed

    def test_reduce(self):
        order = Order(1, "SOL-USDC", Side.SELL, OrderType.LIMIT, 100, 10, 1000, "alice")
        order.reduce(10)
        assert order.is_fully_consumed

        with pytest.raises(ValueError):
            order.reduce(1)

    def test_invalid_orders(self):
        with pytest.raises(ValueError):
            Order(1, "SOL-USDC", Side.BUY, OrderType.LIMIT, 100, 0, 1000, "alice")
        with pytest.raises(ValueError):
            Order(1, "SOL-USDC", Side.BUY, OrderType.LIMIT, None, 5, 1000, "alice")

    def test_copy_is_detached(self):
        """Copies keep the remaining quantity and do not share state."""
        order = Order(1, "SOL-USDC", Side.BUY, OrderType.LIMIT, 100, 10, 1000, "alice")
        order.reduce(4)
        copy = order.copy()
        copy.reduce(1)

        assert order.remaining_qty == 6
        assert copy.remaining_qty == 5

    def test_enums(self):
        assert Side.BUY.opposite == Side.SELL
        assert OrderType.POST_ONLY.rests
        assert not OrderType.IOC.rests
        assert not OrderType.MARKET.rests


class TestResults:
    """Submit and cancel result objects."""

    def test_rejected_result(self):
        result = SubmitResult.rejected(PostOnlyWouldCrossException("would cross"))

        assert result.status == SubmitStatus.REJECTED
        assert result.to_dict()["error"] == "WOULD_CROSS"

    def test_failed_cancel(self):
        result = CancelResult.failed(7, OrderNotFoundException("missing"))

        assert not result.success
        assert result.to_dict() == {
            "success": False,
            "order_id": 7,
            "cancelled_qty": 0,
            "error": "ORDER_NOT_FOUND",
            "message": "missing",
        }


class TestFill:
    """Tests for Fill and FeeSchedule."""

    def test_fill_properties(self):
        fill = Fill(1, "SOL-USDC", 2, 1, 100, 5, 1000, Side.SELL, "alice", "bob")

        assert fill.notional == 500
        assert fill.maker_side == Side.BUY
        assert not fill.taker_is_buyer
        assert fill.to_dict()["taker_side"] == "SELL"

    def test_fill_is_immutable(self):
        fill = Fill(1, "SOL-USDC", 2, 1, 100, 5, 1000, Side.SELL, "alice", "bob")
        with pytest.raises(AttributeError):
            fill.qty = 10

    def test_invalid_fill(self):
        with pytest.raises(ValueError):
            Fill(1, "SOL-USDC", 2, 1, 100, 0, 1000, Side.SELL, "alice", "bob")

    def test_fee_schedule(self):
        maker_fee, taker_fee = FeeSchedule().calculate_fees(10_000)

        assert taker_fee == Decimal("22")
        assert maker_fee == Decimal("-3")

    def test_rebate_cannot_exceed_taker_fee(self):
        with pytest.raises(ValueError):
            FeeSchedule(maker_rate=Decimal("-0.003"), taker_rate=Decimal("0.002"))
        with pytest.raises(ValueError):
            FeeSchedule(maker_rate=Decimal("0"), taker_rate=Decimal("-0.001"))


class TestMarketSpec:
    """Unit conversion between human and engine values."""

    def test_conversions(self):
        market = MarketSpec("SOL-USDC", Decimal("0.01"), Decimal("0.001"))

        assert market.price_to_ticks(Decimal("10.005")) == 1001
        assert market.size_to_lots(Decimal("1.5")) == 1500
        assert market.ticks_to_price(1001) == Decimal("10.01")
        assert market.lots_to_size(1500) == Decimal("1.5")
        assert market.notional_to_quote(1001 * 1500) == Decimal("15.015")

    def test_below_one_unit_rejected(self):
        market = MarketSpec("SOL-USDC")
        with pytest.raises(InvalidOrderException):
            market.price_to_ticks(Decimal("0.004"))
        with pytest.raises(InvalidOrderException):
            market.size_to_lots(Decimal("0.0004"))

    def test_invalid_spec(self):
        with pytest.raises(ValueError):
            MarketSpec("SOL-USDC", tick_size=Decimal("0"))


class TestRequests:
    """Lenient parsing of request enums."""

    @pytest.mark.parametrize("raw,expected", [
        ("limit", OrderType.LIMIT),
        ("ioc", OrderType.IOC),
        ("postOnly", OrderType.POST_ONLY),
        ("post_only", OrderType.POST_ONLY),
        ("MARKET", OrderType.MARKET),
    ])
    def test_order_type_aliases(self, raw, expected):
        request = NewOrderRequest(symbol="SOL-USDC", side="buy", price=1, qty=1,
                                  order_type=raw, owner_id="alice")
        assert request.order_type == expected
        assert request.side == Side.BUY

    def test_unknown_side_rejected(self):
        with pytest.raises(ValidationError):
            NewOrderRequest(symbol="SOL-USDC", side="hold", price=1, qty=1, owner_id="alice")

    def test_fractional_quantity_rejected(self):
        with pytest.raises(ValidationError):
            NewOrderRequest(symbol="SOL-USDC", side="buy", price=1, qty=1.5, owner_id="alice")

    def test_requests_are_frozen(self):
        request = CancelRequest(symbol="SOL-USDC", order_id=1)
        with pytest.raises(ValidationError):
            request.order_id = 2


class TestValidators:
    """Tests for input validators."""

    def test_sanitize_decimal(self):
        assert sanitize_decimal("1.25") == Decimal("1.25")
        assert sanitize_decimal(3) == Decimal(3)
        for bad in ("abc", None, False, "Infinity"):
            with pytest.raises(InvalidOrderException):
                sanitize_decimal(bad, "price")

    def test_validate_positive(self):
        assert validate_positive(Decimal("1"), "size") == Decimal("1")
        with pytest.raises(InvalidOrderException):
            validate_positive(Decimal("0"), "size")
        with pytest.raises(InvalidOrderException):
            validate_positive(Decimal("11"), "size", maximum=Decimal("10"))

    def test_validate_symbol(self):
        assert validate_symbol(" sol-usdc ") == "SOL-USDC"
        for bad in ("", "ab", None):
            with pytest.raises(InvalidSymbolException):
                validate_symbol(bad)


class TestSettings:
    """Configuration defaults and validation."""

    def test_defaults(self):
        settings = Settings()

        assert settings.self_trade_behavior == "decrement_take"
        assert settings.taker_fee_rate == Decimal("0.0022")
        assert settings.maker_fee_rate == Decimal("-0.0003")

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MATCHBOOK_SELF_TRADE_BEHAVIOR", "CANCEL_TAKE")
        monkeypatch.setenv("MATCHBOOK_DEFAULT_DEPTH", "5")

        settings = Settings()

        assert settings.self_trade_behavior == "cancel_take"
        assert settings.default_depth == 5

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            Settings(self_trade_behavior="allow")
        with pytest.raises(ValidationError):
            Settings(market_slippage_bound=Decimal("1.5"))


class TestErrorsAndLogging:
    """Error kinds and structured log output."""

    def test_error_kinds(self):
        assert InvalidSymbolException("bad").kind == ErrorKind.INVALID_ORDER
        error = OrderNotFoundException("missing", details={"order_id": 3})
        assert error.to_dict() == {
            "error": "ORDER_NOT_FOUND",
            "message": "missing",
            "details": {"order_id": 3},
        }

    def test_json_formatter_includes_context(self):
        record = logging.LogRecord("matchbook", logging.INFO, __file__, 1, "Fill 1", None, None)
        record.fill_id = 1
        record.symbol = "SOL-USDC"

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Fill 1"
        assert data["fill_id"] == 1
        assert data["symbol"] == "SOL-USDC"
        assert "order_id" not in data
