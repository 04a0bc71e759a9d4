"""
Storefront Schemas

Each entity comes in two shapes: an "insert" model (what a client sends on
creation, with defaults applied for omitted fields) and the stored model,
which adds the id assigned by the repository.

Field names go over the wire in camelCase (``imageUrl``, ``salePrice``...)
while Python code uses snake_case. Money and rating fields are decimal
strings and are never converted to float.
"""

from __future__ import annotations
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Digits with an optional fractional part: no sign, exponent or underscores
DECIMAL_PATTERN = re.compile(r"[0-9]+(\.[0-9]+)?")


def _decimal_string(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("must be a decimal string")
    if isinstance(value, (int, Decimal)):
        value = str(value)
    if not isinstance(value, str):
        raise ValueError("must be a decimal string")
    value = value.strip()
    if not DECIMAL_PATTERN.fullmatch(value):
        raise ValueError("must be a non-negative decimal string such as '19.99'")
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Products

class InsertProduct(CamelModel):
    name: str = Field(..., min_length=1, description="Display name")
    description: str = Field(..., description="Long description")
    price: str = Field(..., description="Decimal string, e.g. '2500'")
    sale_price: Optional[str] = Field(None, description="Discounted price, decimal string")
    category: str = Field(..., description="Free-text category tag")
    image_url: str = Field(..., description="Primary image URL")
    images: List[str] = Field(default_factory=list)
    stock: int = Field(0, ge=0)
    rating: str = Field("0", description="Decimal string")
    review_count: int = Field(0, ge=0)
    is_active: bool = Field(True, description="False hides the product from listings")
    colors: List[str] = Field(default_factory=list)
    variants: List[str] = Field(default_factory=list)

    @field_validator("price", mode="before")
    @classmethod
    def check_price(cls, v):
        return _decimal_string(v)

    @field_validator("sale_price", mode="before")
    @classmethod
    def check_sale_price(cls, v):
        v = _blank_to_none(v)
        return None if v is None else _decimal_string(v)

    @field_validator("rating", mode="before")
    @classmethod
    def check_rating(cls, v):
        v = _blank_to_none(v)
        return "0" if v is None else _decimal_string(v)

    @field_validator("images", "colors", "variants", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return [] if v is None else v


class Product(InsertProduct):
    id: int


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[str] = None
    sale_price: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    images: Optional[List[str]] = None
    stock: Optional[int] = Field(None, ge=0)
    rating: Optional[str] = None
    review_count: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    colors: Optional[List[str]] = None
    variants: Optional[List[str]] = None

    @field_validator("price", "rating", mode="before")
    @classmethod
    def check_decimals(cls, v):
        return None if v is None else _decimal_string(v)

    @field_validator("sale_price", mode="before")
    @classmethod
    def check_sale_price(cls, v):
        v = _blank_to_none(v)
        return None if v is None else _decimal_string(v)

    def changes(self) -> Dict[str, Any]:
        """Fields the client actually sent. ``salePrice`` may be cleared with
        null; a null for any other field is ignored."""
        sent = self.model_dump(exclude_unset=True)
        return {k: v for k, v in sent.items() if v is not None or k == "sale_price"}


# Cart

class InsertCartItem(CamelModel):
    product_id: int
    quantity: int = Field(1, ge=1)
    selected_color: Optional[str] = None
    selected_variant: Optional[str] = None

    @field_validator("selected_color", "selected_variant", mode="before")
    @classmethod
    def blank_options(cls, v):
        return _blank_to_none(v)


class CartItem(InsertCartItem):
    id: int


class CartItemWithProduct(CartItem):
    product: Product


class CartQuantityUpdate(CamelModel):
    quantity: int


# Orders

class InsertOrder(CamelModel):
    customer_name: str = Field(..., min_length=1)
    customer_email: str = Field(..., min_length=1, description="Contact e-mail as entered, not validated")
    customer_phone: str
    address: str
    total: str = Field(..., description="Decimal string")
    status: str = Field("pending", description="Free text, no enforced transitions")
    created_at: str = Field(default_factory=utc_timestamp, description="ISO-8601 timestamp")

    @field_validator("total", mode="before")
    @classmethod
    def check_total(cls, v):
        return _decimal_string(v)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v):
        return _blank_to_none(v) or "pending"


class Order(InsertOrder):
    id: int


class InsertOrderItem(CamelModel):
    product_id: int
    quantity: int = Field(..., ge=1)
    price: str = Field(..., description="Unit price snapshot at order time")
    selected_color: Optional[str] = None
    selected_variant: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def check_price(cls, v):
        return _decimal_string(v)

    @field_validator("selected_color", "selected_variant", mode="before")
    @classmethod
    def blank_options(cls, v):
        return _blank_to_none(v)


class OrderItem(InsertOrderItem):
    id: int
    order_id: int


class OrderItemWithProduct(OrderItem):
    product: Product


class OrderWithItems(Order):
    items: List[OrderItemWithProduct] = Field(default_factory=list)


class CreateOrderRequest(CamelModel):
    order: InsertOrder
    items: List[InsertOrderItem]
