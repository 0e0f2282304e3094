"""
Configuration management using Pydantic

This module provides application-wide configuration using Pydantic BaseSettings
with support for environment variables and type validation.
"""

from decimal import Decimal
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """
    Application configuration settings.

    All settings can be overridden using environment variables.
    For example, MATCHBOOK_TAKER_FEE_RATE will override taker_fee_rate.
    """

    # Matching Behavior
    self_trade_behavior: str = Field(
        default="decrement_take",
        description="Self-trade policy: cancel_provide, cancel_take, decrement_take"
    )
    market_slippage_bound: Optional[Decimal] = Field(
        default=Decimal("0.05"),
        description="Protective bound applied to market orders around the estimated fill price (None disables)"
    )

    # Fee Model
    taker_fee_rate: Decimal = Field(
        default=Decimal("0.0022"),
        description="Fee rate charged to the taker on each fill"
    )
    maker_fee_rate: Decimal = Field(
        default=Decimal("-0.0003"),
        description="Fee rate charged to the maker (negative is a rebate)"
    )

    # Market Parameters
    default_tick_size: Decimal = Field(
        default=Decimal("0.01"),
        description="Price increment of one tick"
    )
    default_lot_size: Decimal = Field(
        default=Decimal("0.001"),
        description="Base size of one lot"
    )
    supported_symbols: List[str] = Field(
        default_factory=list,
        description="Trading pairs accepted by the registry (empty allows any)"
    )
    max_price_ticks: int = Field(
        default=10_000_000_000,
        description="Maximum acceptable price in ticks"
    )
    max_quantity_lots: int = Field(
        default=10_000_000_000,
        description="Maximum acceptable quantity in lots"
    )

    # Market Data
    default_depth: int = Field(
        default=20,
        description="Default number of price levels per side in snapshots"
    )
    stats_window_seconds: int = Field(
        default=24 * 60 * 60,
        description="Window for volume, high/low and price change statistics"
    )
    recent_trades_limit: int = Field(
        default=100,
        description="Default number of fills returned by recent trade queries"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_dir: Optional[str] = Field(
        default=None,
        description="Directory for log files (console only when unset)"
    )
    use_json_logs: bool = Field(
        default=False,
        description="Emit structured JSON log records"
    )

    @field_validator("self_trade_behavior")
    @classmethod
    def validate_self_trade_behavior(cls, v: str) -> str:
        normalized = v.strip().lower()
        if normalized not in ("cancel_provide", "cancel_take", "decrement_take"):
            raise ValueError(f"Unknown self-trade behavior: {v}")
        return normalized

    @field_validator("market_slippage_bound")
    @classmethod
    def validate_slippage_bound(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and not (Decimal("0") <= v < Decimal("1")):
            raise ValueError("Slippage bound must be in [0, 1)")
        return v

    class Config:
        env_prefix = "MATCHBOOK_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Returns:
        Settings instance
    """
    return settings
