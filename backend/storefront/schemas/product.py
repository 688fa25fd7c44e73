"""
# `storefront/schemas/product.py` — Ürün Şemaları

## `ProductCreate` (admin)
| Field       | Type          | Required | Notes |
|-------------|---------------|----------|-------|
| name        | `str`         | ✔        | |
| price       | `float`       | ✔        | ≥ 0, authoritative price |
| category    | `str`         | ✔        | |
| description | `str`         | ✖        | |
| brand       | `str`         | ✖        | |
| images      | `list[str]`   | ✖        | |
| inStock     | `bool`        | ✖        | default `true` |
| discount    | `float`       | ✖        | percentage, 0-100 |

## `ProductUpdate` (admin)
Every field optional; only the fields sent are written.

## `ProductOut`
Stored fields plus `id` and `finalPrice` (price after discount).
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from storefront.schemas.base import _Base


class ProductCreate(_Base):
    name: str = Field(..., min_length=1, description="Product name")
    price: float = Field(..., ge=0, description="Unit price")
    category: str = Field(..., min_length=1)
    description: str = ""
    brand: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    in_stock: bool = True
    discount: float = Field(0, ge=0, le=100, description="Discount percentage")


class ProductUpdate(_Base):
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    description: Optional[str] = None
    brand: Optional[str] = None
    images: Optional[List[str]] = None
    in_stock: Optional[bool] = None
    discount: Optional[float] = Field(None, ge=0, le=100)


class ProductOut(_Base):
    id: str
    name: str
    price: float
    final_price: float
    category: str = ""
    description: str = ""
    brand: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    in_stock: bool = True
    discount: float = 0
    rating: float = 0
    sales_count: int = 0
    created_at: Optional[datetime] = None


class ProductPage(_Base):
    products: List[ProductOut]
    current_page: int
    total_pages: int
    total_products: int
