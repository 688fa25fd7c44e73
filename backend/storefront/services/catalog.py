# storefront/services/catalog.py
"""
Catalog store: products/{id} dokümanları.

Products are mutated only through catalog administration (admin endpoints); carts and orders
read them through `get_product` / `get_products_by_ids`.
"""
from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

import structlog
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from storefront.config import collection
from storefront.core.errors import NotFound, ValidationError
from storefront.schemas.product import ProductCreate, ProductUpdate

logger = structlog.get_logger(__name__)

SORTABLE_FIELDS = {"name", "price", "rating", "sales_count", "created_at", "discount"}
# camelCase alias'lar (istemci ?sort=-salesCount gönderebilir)
_SORT_ALIASES = {"salesCount": "sales_count", "createdAt": "created_at"}


def _products():
    return collection("products")


def _valid_id(product_id: Any) -> bool:
    pid = str(product_id or "").strip()
    return bool(pid) and "/" not in pid


def final_price(price: Any, discount: Any) -> float:
    """İndirim uygulanmış fiyat (2 hane)."""
    p = Decimal(str(price or 0))
    d = Decimal(str(discount or 0))
    value = p * (Decimal("100") - d) / Decimal("100")
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def product_to_out(pid: str, src: Dict[str, Any]) -> Dict[str, Any]:
    price = float(src.get("price", 0) or 0)
    discount = float(src.get("discount", 0) or 0)
    return {
        "id": pid,
        "name": src.get("name", ""),
        "price": price,
        "final_price": final_price(price, discount),
        "category": src.get("category", ""),
        "description": src.get("description", "") or "",
        "brand": src.get("brand"),
        "images": src.get("images", []) or [],
        "in_stock": bool(src.get("in_stock", True)),
        "discount": discount,
        "rating": float(src.get("rating", 0) or 0),
        "sales_count": int(src.get("sales_count", 0) or 0),
        "created_at": src.get("created_at"),
    }


def get_product(db, product_id: str) -> Optional[Dict[str, Any]]:
    """Ürünü döndürür (id alanıyla); yoksa None."""
    if not _valid_id(product_id):
        return None
    snap = db.collection(_products()).document(str(product_id).strip()).get()
    if not snap.exists:
        return None
    return product_to_out(snap.id, snap.to_dict() or {})


def get_products_by_ids(db, ids: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    for pid in {str(i).strip() for i in ids if _valid_id(i)}:
        product = get_product(db, pid)
        if product:
            out[pid] = product
    return out


def _sort_key(sort: str):
    field = sort[1:] if sort.startswith("-") else sort
    field = _SORT_ALIASES.get(field, field)
    if field not in SORTABLE_FIELDS:
        raise ValidationError(f"Cannot sort by: {field}")
    descending = sort.startswith("-")

    def key(p: Dict[str, Any]):
        value = p.get(field)
        # None değerler her zaman sona
        return (value is None, value if value is not None else 0)

    return key, descending


def list_products(
    db,
    *,
    search: str = "",
    category: str = "",
    brand: str = "",
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    sort: str = "",
    page: int = 1,
    limit: int = 10,
) -> Dict[str, Any]:
    """
    Filtreli + sayfalı ürün listesi.
    Firestore'da regex/çoklu aralık sorgusu olmadığından filtreler Python tarafında uygulanır.
    """
    products: List[Dict[str, Any]] = [
        product_to_out(d.id, d.to_dict() or {}) for d in db.collection(_products()).stream()
    ]

    if search:
        needle = search.lower()
        products = [p for p in products if needle in (p["name"] or "").lower()]
    if category:
        products = [p for p in products if p["category"] == category]
    if brand:
        products = [p for p in products if p["brand"] == brand]
    if min_price is not None:
        products = [p for p in products if p["price"] >= min_price]
    if max_price is not None:
        products = [p for p in products if p["price"] <= max_price]

    if sort:
        key, descending = _sort_key(sort)
        if descending:
            # None'lar sonda kalsın diye iki aşamalı sıralama
            present = sorted((p for p in products if not key(p)[0]), key=key, reverse=True)
            products = present + [p for p in products if key(p)[0]]
        else:
            products = sorted(products, key=key)

    total = len(products)
    start = (page - 1) * limit
    return {
        "products": products[start:start + limit],
        "current_page": page,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "total_products": total,
    }


def create_product(db, payload: ProductCreate) -> Dict[str, Any]:
    ref = db.collection(_products()).document()
    data = payload.model_dump()
    data.update({"rating": 0, "sales_count": 0, "created_at": SERVER_TIMESTAMP})
    ref.set(data)
    logger.info("product_created", product_id=ref.id)
    return product_to_out(ref.id, ref.get().to_dict() or {})


def update_product(db, product_id: str, payload: ProductUpdate) -> Dict[str, Any]:
    if not get_product(db, product_id):
        raise NotFound("Product not found")
    patch = payload.model_dump(exclude_unset=True)
    ref = db.collection(_products()).document(product_id)
    if patch:
        patch["updated_at"] = SERVER_TIMESTAMP
        ref.update(patch)
        logger.info("product_updated", product_id=product_id, fields=sorted(patch))
    return product_to_out(product_id, ref.get().to_dict() or {})


def delete_product(db, product_id: str) -> None:
    if not get_product(db, product_id):
        raise NotFound("Product not found")
    db.collection(_products()).document(product_id).delete()
    logger.info("product_deleted", product_id=product_id)
