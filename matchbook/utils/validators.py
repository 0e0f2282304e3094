"""
Input validation utilities

This module validates the human-unit prices, sizes and symbols accepted by the
service layer before they are converted to engine ticks and lots.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union
from .exceptions import (
    InvalidOrderException,
    InvalidSymbolException,
)


def sanitize_decimal(value: Union[str, int, float, Decimal], field: str = "value") -> Decimal:
    """
    Convert a value to Decimal with proper error handling.

    Args:
        value: Value to convert to Decimal
        field: Name of the field for error messages

    Returns:
        Decimal representation of the value

    Raises:
        InvalidOrderException: If value cannot be converted to a finite Decimal
    """
    if isinstance(value, bool):
        raise InvalidOrderException(f"Invalid {field}: {value}", details={field: value})
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidOrderException(
            f"Invalid {field}: {value}",
            details={field: value, "error": str(e)}
        )
    if not result.is_finite():
        raise InvalidOrderException(f"Invalid {field}: {value}", details={field: str(value)})
    return result


def validate_positive(value: Decimal, field: str, maximum: Optional[Decimal] = None) -> Decimal:
    """
    Check that a decimal is positive and, optionally, not above a maximum.

    Raises:
        InvalidOrderException: If the check fails
    """
    if value <= 0:
        raise InvalidOrderException(
            f"{field.capitalize()} must be positive, got {value}",
            details={field: str(value)}
        )
    if maximum is not None and value > maximum:
        raise InvalidOrderException(
            f"{field.capitalize()} {value} exceeds maximum {maximum}",
            details={field: str(value), "max": str(maximum)}
        )
    return value


def validate_symbol(symbol: str) -> str:
    """
    Validate and normalize a trading symbol.

    Args:
        symbol: Trading symbol to validate

    Returns:
        Upper-cased symbol

    Raises:
        InvalidSymbolException: If symbol is invalid
    """
    if not symbol or not isinstance(symbol, str):
        raise InvalidSymbolException(
            f"Invalid symbol: {symbol}",
            details={"symbol": symbol}
        )

    symbol = symbol.strip().upper()

    if len(symbol) < 3:
        raise InvalidSymbolException(
            f"Symbol too short: {symbol}",
            details={"symbol": symbol}
        )

    return symbol
