"""
Custom exceptions for the matching engine

This module defines a hierarchy of exceptions used throughout the matching engine.
Every exception carries an ErrorKind so the service layer can turn it into a
result object without inspecting the exception type.
"""

from enum import Enum


class ErrorKind(Enum):
    """Typed error kinds reported in submit and cancel results."""
    INVALID_ORDER = "INVALID_ORDER"
    WOULD_CROSS = "WOULD_CROSS"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    INSUFFICIENT_LIQUIDITY = "INSUFFICIENT_LIQUIDITY"
    INTERNAL = "INTERNAL"

    def __str__(self) -> str:
        return self.value


class BaseMatchingEngineException(Exception):
    """Base exception class for all matching engine exceptions."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.kind.value,
            "message": self.message,
            "details": self.details,
        }


class InvalidOrderException(BaseMatchingEngineException):
    """Raised when an order contains invalid parameters or fails validation."""
    kind = ErrorKind.INVALID_ORDER


class InvalidSymbolException(InvalidOrderException):
    """Raised when a trading symbol is invalid or not supported."""
    pass


class PostOnlyWouldCrossException(BaseMatchingEngineException):
    """Raised when a post-only order would take liquidity on arrival."""
    kind = ErrorKind.WOULD_CROSS


class OrderNotFoundException(BaseMatchingEngineException):
    """Raised when attempting to access an order that doesn't exist."""
    kind = ErrorKind.ORDER_NOT_FOUND


class InsufficientLiquidityException(BaseMatchingEngineException):
    """Raised when there is not enough liquidity to price an order."""
    kind = ErrorKind.INSUFFICIENT_LIQUIDITY


class DuplicateOrderException(BaseMatchingEngineException):
    """Raised when attempting to add an order that already exists."""
    pass


class OrderBookException(BaseMatchingEngineException):
    """Raised for general order book operation errors."""
    pass
