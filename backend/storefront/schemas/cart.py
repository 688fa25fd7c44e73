"""
storefront/schemas/cart.py - Pydantic models for Cart.
"""
from typing import List, Optional

from pydantic import Field

from storefront.schemas.base import _Base
from storefront.schemas.product import ProductOut


class AddItemBody(_Base):
    product_id: str = Field(..., min_length=1, description="Product ID")
    # >= 1 kontrolü servis katmanında (ValidationError mesajı için)
    quantity: int = Field(1, description="Quantity (>=1)")


class UpdateItemBody(_Base):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., description="New quantity; < 1 removes the line")


class CartLineOut(_Base):
    product_id: str
    quantity: int
    price: float = Field(..., description="Price snapshot taken at the last add/update")
    product: Optional[ProductOut] = None


class CartOut(_Base):
    user_id: str
    items: List[CartLineOut] = Field(default_factory=list)


class CartTotalsOut(_Base):
    user_id: str
    total_quantity: int
    items_price: float
    shipping_price: float
    tax_price: float
    total_price: float
    currency: str
    amount: int = Field(..., description="total_price in the currency's minor units")
