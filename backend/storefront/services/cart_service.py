# storefront/services/cart_service.py
"""
Cart aggregate: carts/{uid} dokümanı, kullanıcı başına tek sepet.

Doküman şekli:
    {"user_id": uid, "items": [{"product_id", "quantity", "price"}], "updated_at": ...}

- One line per product; adding an existing product sums the quantity.
- `price` is the catalog price at the last add/update of that line.
- Read-modify-write per request (no transaction), last write wins.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from storefront.config import collection
from storefront.core.errors import NotFound, OutOfStock, ValidationError
from storefront.services import catalog

logger = structlog.get_logger(__name__)


def cart_ref(db, uid: str):
    return db.collection(collection("carts")).document(uid)


def _load(db, uid: str) -> Optional[Dict[str, Any]]:
    snap = cart_ref(db, uid).get()
    if not snap.exists:
        return None
    data = snap.to_dict() or {}
    data["items"] = [dict(it) for it in data.get("items", []) if isinstance(it, dict)]
    return data


def _save(db, uid: str, items: List[Dict[str, Any]]) -> None:
    cart_ref(db, uid).set({"user_id": uid, "items": items, "updated_at": SERVER_TIMESTAMP})


def _line_index(items: List[Dict[str, Any]], product_id: str) -> int:
    for i, it in enumerate(items):
        if str(it.get("product_id")) == product_id:
            return i
    return -1


def _with_products(db, uid: str, items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Sepet satırlarına güncel ürün bilgisini ekler (populate)."""
    products = catalog.get_products_by_ids(db, [it.get("product_id") for it in items])
    return {
        "user_id": uid,
        "items": [
            {
                "product_id": str(it.get("product_id")),
                "quantity": int(it.get("quantity", 0) or 0),
                "price": float(it.get("price", 0) or 0),
                "product": products.get(str(it.get("product_id"))),
            }
            for it in items
        ],
    }


def add_item(db, uid: str, product_id: str, quantity: int) -> Dict[str, Any]:
    product = catalog.get_product(db, product_id)
    if not product:
        raise NotFound("Product not found")
    if not product["in_stock"]:
        raise OutOfStock("Product is out of stock")
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")

    cart = _load(db, uid) or {"items": []}
    items = cart["items"]
    idx = _line_index(items, product["id"])
    if idx > -1:
        items[idx]["quantity"] = int(items[idx].get("quantity", 0)) + quantity
        items[idx]["price"] = product["price"]
    else:
        items.append({"product_id": product["id"], "quantity": quantity, "price": product["price"]})

    _save(db, uid, items)
    logger.info("cart_item_added", user_id=uid, product_id=product["id"], quantity=quantity)
    return _with_products(db, uid, items)


def update_item(db, uid: str, product_id: str, quantity: int) -> Dict[str, Any]:
    cart = _load(db, uid)
    if cart is None:
        raise NotFound("Cart not found")
    items = cart["items"]
    idx = _line_index(items, product_id)
    if idx == -1:
        raise NotFound("Item not found in cart")

    if quantity < 1:
        items.pop(idx)
    else:
        items[idx]["quantity"] = quantity
        product = catalog.get_product(db, product_id)
        if product:
            items[idx]["price"] = product["price"]

    _save(db, uid, items)
    logger.info("cart_item_updated", user_id=uid, product_id=product_id, quantity=quantity)
    return _with_products(db, uid, items)


def remove_item(db, uid: str, product_id: str) -> Dict[str, Any]:
    """Idempotent: sepette olmayan satır hata değildir, yazma da yapılmaz."""
    cart = _load(db, uid)
    if cart is None:
        return {"user_id": uid, "items": []}
    items = cart["items"]
    remaining = [it for it in items if str(it.get("product_id")) != product_id]
    if len(remaining) != len(items):
        _save(db, uid, remaining)
        logger.info("cart_item_removed", user_id=uid, product_id=product_id)
    return _with_products(db, uid, remaining)


def get_cart(db, uid: str) -> Dict[str, Any]:
    cart = _load(db, uid)
    if cart is None:
        return {"user_id": uid, "items": []}
    return _with_products(db, uid, cart["items"])


def get_lines(db, uid: str) -> List[Dict[str, Any]]:
    """Fiyat snapshot'larıyla ham sepet satırları (checkout hesabı için)."""
    cart = _load(db, uid)
    return cart["items"] if cart else []


def clear_cart(db, uid: str) -> None:
    """Satırları boşaltır; doküman korunur."""
    if _load(db, uid) is None:
        raise NotFound("Cart not found")
    cart_ref(db, uid).update({"items": [], "updated_at": SERVER_TIMESTAMP})
    logger.info("cart_cleared", user_id=uid)
