"""
Market Data Service - order book snapshots, recent trades and market statistics.

Everything here is read-only and expressed in human units (quote prices and
base sizes) using each market's tick and lot sizes.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from matchbook.core.market import MarketSpec
from matchbook.core.matching_engine import MatchingEngine
from matchbook.core.registry import MarketRegistry
from matchbook.core.snapshot import LevelSummary, SnapshotView
from matchbook.core.trade_log import TradeStats
from matchbook.utils.validators import validate_symbol


def _iso(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat()


class MarketDataService:
    """
    Service class for read-only market data.

    Symbols without an engine read as empty markets rather than errors, and
    reads never create one.
    """

    def __init__(self, registry: MarketRegistry):
        """
        Initialize market data service.

        Args:
            registry: Registry of per-symbol matching engines
        """
        self.registry = registry
        self.settings = registry.settings
        self.logger = logging.getLogger(f"{__name__}.MarketDataService")

    def get_order_book(self, symbol: str, depth: Optional[int] = None) -> Dict[str, Any]:
        """
        Order book snapshot with spread.

        Args:
            symbol: Trading pair symbol
            depth: Number of price levels per side (configured default when None)

        Returns:
            Dictionary with bids, asks, spread, spread_percentage and timestamp
        """
        symbol = validate_symbol(symbol)
        depth = self.settings.default_depth if depth is None else depth
        engine = self._engine(symbol)

        if engine is None:
            return {
                "symbol": symbol,
                "bids": [],
                "asks": [],
                "best_bid": None,
                "best_ask": None,
                "spread": None,
                "spread_percentage": "0",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }

        market = engine.market
        snapshot = engine.snapshot(depth)
        spread = snapshot.spread()

        return {
            "symbol": symbol,
            "bids": [self._level(market, level, "buy") for level in snapshot.bids],
            "asks": [self._level(market, level, "sell") for level in snapshot.asks],
            "best_bid": self._price(market, snapshot.best_bid),
            "best_ask": self._price(market, snapshot.best_ask),
            "spread": self._price(market, spread),
            "spread_percentage": str(snapshot.spread_percentage()),
            "timestamp": _iso(snapshot.timestamp),
        }

    def get_recent_trades(self, symbol: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Recent fills, most recent first.

        Args:
            symbol: Trading pair symbol
            limit: Maximum number of fills (configured default when None)

        Returns:
            List of trade dictionaries
        """
        symbol = validate_symbol(symbol)
        limit = self.settings.recent_trades_limit if limit is None else limit
        engine = self._engine(symbol)
        if engine is None:
            return []

        market = engine.market
        return [
            {
                "fill_id": fill.fill_id,
                "symbol": symbol,
                "price": market.ticks_to_price(fill.price),
                "size": market.lots_to_size(fill.qty),
                "side": fill.taker_side.value.lower(),
                "time": _iso(fill.timestamp),
                "taker_fee": market.notional_to_quote(fill.taker_fee),
                "maker_fee": market.notional_to_quote(fill.maker_fee),
                "maker_order_id": fill.maker_order_id,
                "taker_order_id": fill.taker_order_id,
            }
            for fill in engine.recent_fills(limit)
        ]

    def get_market_stats(
        self,
        symbol: str,
        window_seconds: Optional[int] = None,
        now_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Last price, change, volume, high/low and spread over a trailing window.

        Args:
            symbol: Trading pair symbol
            window_seconds: Trailing window (configured default, 24h, when None)
            now_ms: Inclusive end of the window in epoch milliseconds (current
                time when None); later fills are not counted

        Returns:
            Dictionary of market statistics in human units
        """
        symbol = validate_symbol(symbol)
        window_seconds = self.settings.stats_window_seconds if window_seconds is None else window_seconds
        if now_ms is None:
            now_ms = int(datetime.now(timezone.utc).timestamp() * 1000)

        engine = self._engine(symbol)
        if engine is None:
            market = self.registry.market_for(symbol)
            stats = TradeStats(0, 0, 0, 0, 0, Decimal("0"), 0)
            snapshot = SnapshotView(symbol, (), (), now_ms)
        else:
            market = engine.market
            stats = engine.trade_log.stats(now_ms - window_seconds * 1000, now_ms)
            snapshot = engine.snapshot(1)

        return {
            "symbol": symbol,
            "last_price": market.ticks_to_price(stats.last_price),
            "price_change": stats.price_change_pct,
            "volume_24h": market.notional_to_quote(stats.volume),
            "high_24h": market.ticks_to_price(stats.high),
            "low_24h": market.ticks_to_price(stats.low),
            "best_bid": market.ticks_to_price(snapshot.best_bid or 0),
            "best_ask": market.ticks_to_price(snapshot.best_ask or 0),
            "spread": self._price(market, snapshot.spread()),
            "spread_percentage": snapshot.spread_percentage(),
            "base_volume_24h": market.lots_to_size(stats.base_volume),
            "quote_volume_24h": market.notional_to_quote(stats.volume),
            "trade_count": stats.trade_count,
            "window_seconds": window_seconds,
            "updated": _iso(now_ms),
        }

    def _engine(self, symbol: str) -> Optional[MatchingEngine]:
        if symbol not in self.registry:
            self.logger.debug(f"No market for {symbol}, returning empty data")
            return None
        return self.registry.get(symbol)

    @staticmethod
    def _price(market: MarketSpec, ticks: Optional[int]):
        return market.ticks_to_price(ticks) if ticks is not None else None

    @staticmethod
    def _level(market: MarketSpec, level: LevelSummary, side: str) -> Dict[str, Any]:
        return {
            "price": market.ticks_to_price(level.price),
            "size": market.lots_to_size(level.quantity),
            "orders": level.order_count,
            "side": side,
        }
