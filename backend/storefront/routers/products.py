"""
# `storefront/routers/products.py` — Ürün Yönetimi

## Public
### `GET /products`
Filters: `search` (name, case-insensitive), `category`, `brand`, `minPrice`, `maxPrice`;
`sort` (`price`, `-price`, `rating`, `-salesCount`, ...); `page` / `limit`.
Returns `{products, currentPage, totalPages, totalProducts}`.

### `GET /products/{product_id}`
Single product, 404 if unknown.

## Admin (prefix `/admin`)
- `POST /admin/products` — create
- `PUT /admin/products/{product_id}` — partial update
- `DELETE /admin/products/{product_id}` — hard delete

Product price changes affect carts on their next add/update and never affect existing orders.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from storefront.config import get_db
from storefront.core.errors import NotFound
from storefront.core.security import require
from storefront.schemas.product import ProductCreate, ProductOut, ProductPage, ProductUpdate
from storefront.services import catalog

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("", response_model=ProductPage, summary="List Products")
def list_products(
    search: str = Query("", description="Ürün adında arama"),
    category: str = Query(""),
    brand: str = Query(""),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    sort: str = Query("", description="field veya -field"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db=Depends(get_db),
):
    return catalog.list_products(
        db,
        search=search,
        category=category,
        brand=brand,
        min_price=min_price,
        max_price=max_price,
        sort=sort,
        page=page,
        limit=limit,
    )


@router.get("/{product_id}", response_model=ProductOut, summary="Get Product")
def get_product(product_id: str, db=Depends(get_db)):
    product = catalog.get_product(db, product_id)
    if not product:
        raise NotFound("Product not found")
    return product


# Admin sub-router for product management
admin_router = APIRouter(
    prefix="/products",
    tags=["Admin Products"],
    dependencies=[Depends(require("product:write"))],
)


@admin_router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED, summary="Create Product")
def create_product(payload: ProductCreate, db=Depends(get_db)):
    return catalog.create_product(db, payload)


@admin_router.put("/{product_id}", response_model=ProductOut, summary="Update Product")
def update_product(product_id: str, payload: ProductUpdate, db=Depends(get_db)):
    return catalog.update_product(db, product_id, payload)


@admin_router.delete("/{product_id}", summary="Delete Product")
def delete_product(product_id: str, db=Depends(get_db)):
    catalog.delete_product(db, product_id)
    return {"message": "Product deleted"}
