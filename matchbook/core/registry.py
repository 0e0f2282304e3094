"""
Registry of matching engines by trading symbol

Each symbol owns an independent engine. Engines are created on first
reference and stay until explicitly evicted.
"""

import threading
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from .market import MarketSpec
from .matching_engine import MatchingEngine
from .order import SelfTradeBehavior
from .fill import FeeSchedule
from ..config import Settings, get_settings
from ..utils.exceptions import InvalidSymbolException, OrderBookException
from ..utils.logger import get_logger


class MarketRegistry:
    """
    Maps symbol -> MatchingEngine.

    The registry lock only guards the map itself; matching on different
    symbols never contends on it.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Initialize the registry.

        Args:
            settings: Defaults for new engines (global settings when None)
            clock: Epoch-millisecond clock passed to every engine
        """
        self.settings: Settings = settings or get_settings()
        self._engines: Dict[str, MatchingEngine] = {}
        self._clock = clock
        self._lock = threading.Lock()
        self.logger = get_logger(
            log_level=self.settings.log_level,
            log_dir=self.settings.log_dir,
            use_json=self.settings.use_json_logs,
        )

    def get_or_create(self, symbol: str, market: Optional[MarketSpec] = None) -> MatchingEngine:
        """
        Engine for symbol, created with configured defaults on first reference.

        Args:
            symbol: Trading pair symbol
            market: Tick/lot conventions for a new engine (ignored if it exists)

        Raises:
            InvalidSymbolException: If the symbol is empty or not supported
        """
        symbol = self._normalize(symbol)
        with self._lock:
            engine = self._engines.get(symbol)
            if engine is None:
                engine = self._create_engine(symbol, market)
                self._engines[symbol] = engine
                self.logger.info(f"Created new order book for {symbol}", symbol=symbol)
            return engine

    def get(self, symbol: str) -> MatchingEngine:
        """
        Existing engine for symbol.

        Raises:
            InvalidSymbolException: If no engine exists for symbol
        """
        symbol = self._normalize(symbol)
        with self._lock:
            engine = self._engines.get(symbol)
        if engine is None:
            raise InvalidSymbolException(
                f"No market for symbol {symbol}",
                details={"symbol": symbol}
            )
        return engine

    def evict(self, symbol: str, force: bool = False) -> bool:
        """
        Drop the engine for symbol.

        Args:
            symbol: Trading pair symbol
            force: Evict even when orders are resting

        Returns:
            True if an engine was removed

        Raises:
            OrderBookException: If orders rest on the book and force is False
        """
        symbol = self._normalize(symbol)
        with self._lock:
            engine = self._engines.get(symbol)
            if engine is None:
                return False
            resting = len(engine.order_book)
            if resting and not force:
                raise OrderBookException(
                    f"Cannot evict {symbol}: {resting} orders resting",
                    details={"symbol": symbol, "resting_orders": resting}
                )
            del self._engines[symbol]
        self.logger.info(f"Evicted order book for {symbol}", symbol=symbol)
        return True

    def market_for(self, symbol: str) -> MarketSpec:
        """
        Tick/lot conventions for symbol without creating an engine.

        Existing engines report their own market; other symbols get the
        configured defaults.

        Raises:
            InvalidSymbolException: If the symbol is empty or not supported
        """
        symbol = self._normalize(symbol)
        with self._lock:
            engine = self._engines.get(symbol)
        return engine.market if engine is not None else self._default_market(symbol)

    def symbols(self) -> List[str]:
        with self._lock:
            return sorted(self._engines)

    def __contains__(self, symbol: str) -> bool:
        with self._lock:
            return symbol.strip().upper() in self._engines

    def __len__(self) -> int:
        with self._lock:
            return len(self._engines)

    def _normalize(self, symbol: str) -> str:
        if not symbol or not isinstance(symbol, str) or not symbol.strip():
            raise InvalidSymbolException(f"Invalid symbol: {symbol!r}", details={"symbol": symbol})
        symbol = symbol.strip().upper()
        supported = [s.upper() for s in self.settings.supported_symbols]
        if supported and symbol not in supported:
            raise InvalidSymbolException(
                f"Symbol {symbol} not in allowed list",
                details={"symbol": symbol, "allowed": supported}
            )
        return symbol

    def _default_market(self, symbol: str) -> MarketSpec:
        return MarketSpec(
            symbol=symbol,
            tick_size=self.settings.default_tick_size,
            lot_size=self.settings.default_lot_size,
        )

    def _create_engine(self, symbol: str, market: Optional[MarketSpec]) -> MatchingEngine:
        settings = self.settings
        if market is None:
            market = self._default_market(symbol)
        elif market.symbol.upper() != symbol:
            raise InvalidSymbolException(
                f"Market spec {market.symbol} does not match symbol {symbol}",
                details={"symbol": symbol}
            )
        else:
            market = MarketSpec(symbol, market.tick_size, market.lot_size)

        return MatchingEngine(
            symbol,
            market=market,
            self_trade_behavior=SelfTradeBehavior(settings.self_trade_behavior),
            fee_schedule=FeeSchedule(
                maker_rate=Decimal(settings.maker_fee_rate),
                taker_rate=Decimal(settings.taker_fee_rate),
            ),
            market_slippage_bound=settings.market_slippage_bound,
            clock=self._clock,
            log_level=settings.log_level,
        )
