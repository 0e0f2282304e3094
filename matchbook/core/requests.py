"""
Pydantic models for order requests.

These are the in-process request shapes accepted by the engine and the
service layer. Enum fields parse leniently ("buy", "BUY", "postOnly").
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .order import OrderType, Side


_ORDER_TYPE_ALIASES = {
    "POSTONLY": "POST_ONLY",
    "POST-ONLY": "POST_ONLY",
    "IMMEDIATE_OR_CANCEL": "IOC",
}


class NewOrderRequest(BaseModel):
    """Request to submit a new order, in ticks and lots."""

    model_config = ConfigDict(frozen=True, json_schema_extra={
        "example": {
            "symbol": "SOL-USDC",
            "side": "buy",
            "price": 10025,
            "qty": 1500,
            "order_type": "limit",
            "owner_id": "wallet-1",
            "client_id": 42
        }
    })

    symbol: str = Field(..., description="Trading pair symbol", min_length=1)
    side: Side = Field(..., description="Order side: buy or sell")
    price: Optional[int] = Field(None, description="Limit price in ticks (omit for market orders)")
    qty: int = Field(..., description="Order quantity in lots")
    order_type: OrderType = Field(OrderType.LIMIT, description="limit, ioc, market or post_only")
    owner_id: str = Field(..., description="Owner of the order")
    client_id: Optional[int] = Field(None, description="Owner-chosen order identifier")

    @field_validator("side", mode="before")
    @classmethod
    def parse_side(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("order_type", mode="before")
    @classmethod
    def parse_order_type(cls, v):
        if isinstance(v, str):
            key = v.strip().upper()
            return _ORDER_TYPE_ALIASES.get(key, key)
        return v


class CancelRequest(BaseModel):
    """Request to cancel a resting order."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., description="Trading pair symbol", min_length=1)
    order_id: int = Field(..., description="Engine order id")
    owner_id: Optional[str] = Field(None, description="Owner that must match the resting order")
