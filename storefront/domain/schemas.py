# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, List
from decimal import Decimal
from datetime import datetime


class OrderItemIn(BaseModel):
    """
    Pozycja zamowienia od klienta.
    Typy sa celowo luzne: koercja i polityka dla blednych pozycji
    (drop/reject) sa w storefront.domain.order.coerce_items.
    """

    product_id: Any = Field(None, alias="productId", description="ID produktu")
    quantity: Any = Field(None, description="Ilosc (musi byc > 0)")

    model_config = ConfigDict(populate_by_name=True)


class OrderCreate(BaseModel):
    """Schema dla tworzenia zamowienia."""

    items: List[OrderItemIn] = Field(default_factory=list)


class OrderItemOut(BaseModel):
    product_id: int
    product_name: str
    quantity: int
    price: Decimal


class OrderOut(BaseModel):
    """Schema dla zamowienia (response)."""

    id: int
    user_id: int
    status: str
    items: List[OrderItemOut]
    total: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
