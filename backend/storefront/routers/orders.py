"""
# `storefront/routers/orders.py` — Sipariş Endpoint'leri

| Method | Path              | Who            | Purpose |
|--------|-------------------|----------------|---------|
| POST   | `/orders/create`  | user / admin   | Create an order from the submitted cart snapshot, clear the cart |
| GET    | `/orders`         | admin          | All orders (newest first, purchaser resolved), `status`/`page`/`limit` |
| GET    | `/orders/my`      | any caller     | Caller's own orders, newest first |
| GET    | `/orders/{id}`    | owner / admin  | Order detail |
| PUT    | `/orders/{id}`    | admin          | Patch `status`, `paymentStatus`, `isPaid`, `isDelivered` |
| DELETE | `/orders/{id}`    | admin          | Hard delete |

`POST /orders/create` accepts an optional `checkout_id` query parameter: repeating a request
with the same key returns the order created the first time instead of a new one.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from storefront.config import get_db
from storefront.core.auth import get_principal
from storefront.core.security import ensure_can
from storefront.schemas.order import OrderCreate, OrderCreated, OrderOut, OrderPage, OrderStatusPatch, OrderUpdated
from storefront.schemas.principal import Principal
from storefront.services import order_service

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("/create", response_model=OrderCreated, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    checkout_id: Optional[str] = Query(
        None,
        description="Aynı checkout için tek sipariş üretmek üzere idempotent anahtar (ör. UUID).",
    ),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    ensure_can(principal, "order:create")
    order_id = order_service.create_order(
        db,
        principal,
        billing_details=payload.billing_details,
        payment_method=payload.payment_method,
        cart_items=payload.cart_items,
        totals=payload.submitted_totals(),
        payment_intent_id=payload.payment_intent_id,
        checkout_id=checkout_id,
    )
    return {"order_id": order_id}


@router.get("", response_model=OrderPage)
def list_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    ensure_can(principal, "order:list")
    return order_service.list_orders(db, status=status_filter, page=page, limit=limit)


@router.get("/my", response_model=List[OrderOut])
def list_my_orders(principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return order_service.get_orders_for_user(db, principal.uid)


@router.get("/{order_id}", response_model=OrderOut)
def get_order_detail(order_id: str, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    """Kullanıcı kendi siparişini, admin tümünü görebilir."""
    ensure_can(principal, "order:read", order_service.get_order_owner(db, order_id))
    return order_service.get_order(db, order_id)


@router.put("/{order_id}", response_model=OrderUpdated)
def update_order_status(
    order_id: str,
    payload: OrderStatusPatch,
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    ensure_can(principal, "order:update")
    return {"order": order_service.update_order_status(db, order_id, payload)}


@router.delete("/{order_id}")
def delete_order(order_id: str, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    ensure_can(principal, "order:delete")
    order_service.delete_order(db, order_id)
    return {"message": "Order deleted successfully"}
