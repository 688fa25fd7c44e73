# storefront/services/order_service.py
"""
Order aggregate.

- `order_items` are a snapshot taken at creation (name, price, image) and are never
  rewritten afterwards; only status fields change.
- Order write and cart clearing are committed in one write batch.
"""
from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from firebase_admin import firestore
from google.api_core.exceptions import FailedPrecondition, GoogleAPICallError
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from storefront.config import collection
from storefront.core.errors import NotFound, ValidationError
from storefront.schemas.order import ORDER_STATUSES, BillingDetails, OrderStatusPatch, TotalsIn
from storefront.schemas.principal import Principal
from storefront.services import catalog, payment_reconciler
from storefront.services.cart_service import cart_ref
from storefront.services.checkout import as_floats, calc_totals

logger = structlog.get_logger(__name__)

__all__ = [
    "CARD_PAYMENT_METHODS",
    "coerce_item",
    "create_order",
    "list_orders",
    "get_orders_for_user",
    "get_order",
    "get_order_owner",
    "update_order_status",
    "delete_order",
    "order_doc_to_out",
]

CARD_PAYMENT_METHODS = {"stripe", "card"}
REQUIRED_ADDRESS_FIELDS = ("address", "city", "postal_code", "country")


def _orders():
    return collection("orders")


# ──────────────────────────────────────────────────────────────────────────────
# Satır normalizasyonu
# ──────────────────────────────────────────────────────────────────────────────

def _nested_product(raw: Dict[str, Any]) -> Dict[str, Any]:
    """productId bir obje olarak (populate edilmiş) veya 'product' altında gelebilir."""
    for key in ("productId", "product_id", "product"):
        value = raw.get(key)
        if isinstance(value, dict):
            return value
    return {}


def _extract_product_id(raw: Dict[str, Any]) -> Optional[str]:
    for key in ("productId", "product_id"):
        value = raw.get(key)
        if isinstance(value, (str, int)) and str(value).strip():
            return str(value).strip()
    nested = _nested_product(raw)
    for key in ("_id", "id"):
        if nested.get(key):
            return str(nested[key])
    return None


def _first_image(images: Any) -> Optional[str]:
    if isinstance(images, list) and images:
        return str(images[0]) if images[0] is not None else None
    return None


def _whole_quantity(value: Any) -> Optional[int]:
    """2 ve "2" kabul edilir; 2.5, true ve sayı olmayanlar None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def coerce_item(raw: Any, catalog_prices: Dict[str, float]) -> Dict[str, Any]:
    """
    İstemci sepet satırını sipariş satırına çevirir.
    Fiyat sırası: satır fiyatı → iç içe ürün fiyatı → katalog fiyatı.
    """
    if not isinstance(raw, dict):
        raise ValidationError("Invalid cart item")
    nested = _nested_product(raw)
    product_id = _extract_product_id(raw)
    if not product_id:
        raise ValidationError("Product id missing for cart item")

    quantity = _whole_quantity(raw.get("quantity", 0))
    if quantity is None:
        raise ValidationError(f"Quantity must be a whole number for product: {product_id}")
    if quantity < 1:
        raise ValidationError(f"Quantity must be at least 1 for product: {product_id}")

    price = raw.get("price")
    if not price:
        price = nested.get("price")
    if not price:
        price = catalog_prices.get(product_id)
    if not price:
        logger.error("order_item_price_missing", product_id=product_id)
        raise ValidationError(f"Price missing for product: {product_id}")
    try:
        price_dec = Decimal(str(price))
    except ArithmeticError:
        raise ValidationError(f"Invalid price for product: {product_id}")
    if not price_dec.is_finite() or price_dec < 0:
        raise ValidationError(f"Invalid price for product: {product_id}")

    return {
        "product_id": product_id,
        "name": raw.get("name") or nested.get("name") or "Unknown Product",
        "price": float(price_dec),
        "quantity": quantity,
        "image": raw.get("image") or _first_image(nested.get("images")) or nested.get("image"),
    }


def _missing_prices_lookup(db, cart_items: List[Any]) -> Dict[str, float]:
    """Sadece fiyatı gelmeyen satırlar için katalogdan fiyat çeker."""
    ids = []
    for raw in cart_items:
        if isinstance(raw, dict) and not raw.get("price") and not _nested_product(raw).get("price"):
            pid = _extract_product_id(raw)
            if pid:
                ids.append(pid)
    if not ids:
        return {}
    return {pid: p["price"] for pid, p in catalog.get_products_by_ids(db, ids).items()}


def _validated_address(billing: BillingDetails) -> Dict[str, Any]:
    data = billing.model_dump(exclude_none=True)
    if any(not str(data.get(f) or "").strip() for f in REQUIRED_ADDRESS_FIELDS):
        raise ValidationError("Complete shipping address is required")
    return data


def _log_totals_mismatch(uid: str, submitted: Optional[TotalsIn], computed: Dict[str, Decimal]) -> None:
    if submitted is None:
        return
    for field, value in submitted.model_dump(exclude_none=True).items():
        if Decimal(str(value)).quantize(Decimal("0.01")) != computed[field]:
            logger.warning(
                "order_totals_mismatch",
                user_id=uid,
                field=field,
                submitted=value,
                computed=str(computed[field]),
            )


# ──────────────────────────────────────────────────────────────────────────────
# Okuma / dönüştürme
# ──────────────────────────────────────────────────────────────────────────────

def _resolve_purchaser(db, data: Dict[str, Any]) -> Dict[str, Any]:
    uid = data.get("user_id") or ""
    purchaser = {"id": uid, "name": data.get("customer_name"), "email": data.get("customer_email")}
    if uid and "/" not in uid:
        snap = db.collection(collection("users")).document(uid).get()
        if snap.exists:
            u = snap.to_dict() or {}
            purchaser["name"] = u.get("name") or purchaser["name"]
            purchaser["email"] = u.get("email") or purchaser["email"]
    return purchaser


def order_doc_to_out(snap, purchaser: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Firestore doc → OrderOut ile uyumlu dict."""
    data = snap.to_dict() or {}
    return {
        "id": snap.id,
        "user_id": data.get("user_id"),
        "user": purchaser,
        "order_items": [dict(it) for it in data.get("order_items", [])],
        "shipping_address": data.get("shipping_address") or {},
        "payment_method": data.get("payment_method"),
        "payment_status": data.get("payment_status") or "pending",
        "payment_intent_id": data.get("payment_intent_id"),
        "payment_result": data.get("payment_result"),
        "items_price": data.get("items_price", 0),
        "shipping_price": data.get("shipping_price", 0),
        "tax_price": data.get("tax_price", 0),
        "total_price": data.get("total_price", 0),
        "is_paid": bool(data.get("is_paid")),
        "paid_at": data.get("paid_at"),
        "is_delivered": bool(data.get("is_delivered")),
        "delivered_at": data.get("delivered_at"),
        "status": data.get("status") or "Pending",
        "created_at": data.get("created_at"),
        "updated_at": data.get("updated_at"),
    }


def _get_snapshot(db, order_id: str):
    if not order_id or "/" in order_id:
        raise NotFound("Order not found")
    snap = db.collection(_orders()).document(order_id).get()
    if not snap.exists:
        raise NotFound("Order not found")
    return snap


def _created_ts(doc) -> float:
    created = (doc.to_dict() or {}).get("created_at")
    return created.timestamp() if created is not None else 0


def _newest_first(query_base, *filters):
    """created_at DESC; bileşik indeks yoksa Python tarafında sıralar."""
    q = query_base
    for f in filters:
        q = q.where(filter=f)
    try:
        return list(q.order_by("created_at", direction=firestore.Query.DESCENDING).stream())
    except FailedPrecondition:
        logger.warning("orders_index_missing_sorting_in_memory")
        q = query_base
        for f in filters:
            q = q.where(filter=f)
        return sorted(q.stream(), key=_created_ts, reverse=True)


# ──────────────────────────────────────────────────────────────────────────────
# İşlemler
# ──────────────────────────────────────────────────────────────────────────────

def create_order(
    db,
    principal: Principal,
    *,
    billing_details: BillingDetails,
    payment_method: Optional[str],
    cart_items: List[Any],
    totals: Optional[TotalsIn] = None,
    payment_intent_id: Optional[str] = None,
    checkout_id: Optional[str] = None,
) -> str:
    """
    Sepet snapshot'ından sipariş oluşturur ve aynı batch içinde sepeti boşaltır.
    Dönüş: order id.
    """
    uid = principal.uid
    if not cart_items:
        raise ValidationError("Cart is empty")
    address = _validated_address(billing_details)
    if not (payment_method or "").strip():
        raise ValidationError("Payment method is required")

    # Idempotent kontrol (checkout_id varsa)
    if checkout_id:
        existing = list(
            db.collection(_orders())
              .where(filter=FieldFilter("user_id", "==", uid))
              .where(filter=FieldFilter("_checkout_id", "==", checkout_id))
              .limit(1)
              .stream()
        )
        if existing:
            logger.info("order_checkout_replayed", user_id=uid, order_id=existing[0].id, checkout_id=checkout_id)
            return existing[0].id

    catalog_prices = _missing_prices_lookup(db, cart_items)
    order_items = [coerce_item(raw, catalog_prices) for raw in cart_items]
    computed = calc_totals(order_items)
    _log_totals_mismatch(uid, totals, computed)

    is_card = payment_method.strip().lower() in CARD_PAYMENT_METHODS
    order_doc = {
        "user_id": uid,
        "customer_name": principal.display_name or address.get("full_name"),
        "customer_email": principal.email or address.get("email"),
        "order_items": order_items,
        "shipping_address": address,
        "payment_method": payment_method.strip(),
        "payment_status": "pending",
        "payment_intent_id": payment_intent_id if is_card else None,
        "payment_result": None,
        **as_floats(computed),
        "is_paid": False,
        "paid_at": None,
        "is_delivered": False,
        "delivered_at": None,
        "status": "Pending",
        "created_at": SERVER_TIMESTAMP,
        "updated_at": SERVER_TIMESTAMP,
    }
    if checkout_id:
        order_doc["_checkout_id"] = checkout_id

    order_ref = db.collection(_orders()).document()
    batch = db.batch()
    batch.set(order_ref, order_doc)
    batch.set(cart_ref(db, uid), {"user_id": uid, "items": [], "updated_at": SERVER_TIMESTAMP}, merge=True)
    batch.commit()
    logger.info(
        "order_created",
        order_id=order_ref.id,
        user_id=uid,
        total_price=order_doc["total_price"],
        payment_method=order_doc["payment_method"],
    )

    # Webhook siparişten önce geldiyse bekleyen bildirimi şimdi uygula
    if order_doc["payment_intent_id"]:
        try:
            payment_reconciler.replay_pending(db, order_doc["payment_intent_id"])
        except GoogleAPICallError as exc:
            # Sipariş kaydedildi; bekleyen bildirim scheduler ile uygulanır
            logger.error(
                "payment_event_replay_failed",
                order_id=order_ref.id,
                payment_intent_id=order_doc["payment_intent_id"],
                error=str(exc),
            )

    return order_ref.id


def list_orders(db, *, status: Optional[str] = None, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    filters = [FieldFilter("status", "==", status)] if status else []
    docs = _newest_first(db.collection(_orders()), *filters)
    total = len(docs)
    start = (page - 1) * limit
    return {
        "orders": [order_doc_to_out(d, _resolve_purchaser(db, d.to_dict() or {})) for d in docs[start:start + limit]],
        "current_page": page,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "total_orders": total,
    }


def get_orders_for_user(db, uid: str) -> List[Dict[str, Any]]:
    """
    Kullanıcının siparişleri (yeniden eskiye). Ad/görsel katalogdan yeniden eklenir,
    ürün silinmişse snapshot kullanılır; fiyat her zaman snapshot'tır.
    """
    docs = _newest_first(db.collection(_orders()), FieldFilter("user_id", "==", uid))
    outs = [order_doc_to_out(d) for d in docs]
    product_ids = {it.get("product_id") for o in outs for it in o["order_items"]}
    products = catalog.get_products_by_ids(db, product_ids)
    for out in outs:
        for item in out["order_items"]:
            product = products.get(str(item.get("product_id")))
            if not product:
                continue
            item["name"] = product["name"] or item.get("name")
            item["image"] = _first_image(product["images"]) or item.get("image")
            item["description"] = product["description"]
    return outs


def get_order(db, order_id: str) -> Dict[str, Any]:
    snap = _get_snapshot(db, order_id)
    return order_doc_to_out(snap, _resolve_purchaser(db, snap.to_dict() or {}))


def get_order_owner(db, order_id: str) -> Dict[str, Any]:
    """Yetki kontrolü için ham kaynak (user_id)."""
    snap = _get_snapshot(db, order_id)
    return {"id": snap.id, "user_id": (snap.to_dict() or {}).get("user_id")}


def update_order_status(db, order_id: str, patch_in: OrderStatusPatch) -> Dict[str, Any]:
    """
    Admin kısmi güncellemesi. Geçişler kısıtlanmaz; sadece durum alanları yazılır.
    """
    snap = _get_snapshot(db, order_id)
    current = snap.to_dict() or {}
    patch: Dict[str, Any] = {}

    if patch_in.status:
        if patch_in.status not in ORDER_STATUSES:
            raise ValidationError("Invalid status")
        patch["status"] = patch_in.status
        if patch_in.status == "Delivered":
            patch["is_delivered"] = True
            patch["delivered_at"] = SERVER_TIMESTAMP
        elif patch_in.status == "Cancelled":
            patch["is_delivered"] = False
            patch["delivered_at"] = None

    if patch_in.payment_status:
        patch["payment_status"] = patch_in.payment_status

    if patch_in.is_paid is not None:
        patch["is_paid"] = patch_in.is_paid
        patch["paid_at"] = SERVER_TIMESTAMP if patch_in.is_paid else None

    if patch_in.is_delivered is not None:
        patch["is_delivered"] = patch_in.is_delivered
        if patch_in.is_delivered:
            patch["delivered_at"] = SERVER_TIMESTAMP
            patch["status"] = "Delivered"
        else:
            patch["delivered_at"] = None
            if patch.get("status", current.get("status")) == "Delivered":
                patch["status"] = "Shipped"

    if patch:
        patch["updated_at"] = SERVER_TIMESTAMP
        snap.reference.update(patch)
        logger.info("order_status_updated", order_id=order_id, fields=sorted(patch))
    return get_order(db, order_id)


def delete_order(db, order_id: str) -> None:
    snap = _get_snapshot(db, order_id)
    snap.reference.delete()
    logger.info("order_deleted", order_id=order_id)
