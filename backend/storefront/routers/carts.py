"""
storefront/routers/carts.py
Cart endpoints (logged-in users): add, update quantity, remove one, clear, get full cart,
and get checkout totals for the current cart.

Behavior
- Add reads the product from the catalog: unknown → 404, out of stock → 400, and stores the
  current catalog price as the line's price snapshot.
- PUT with quantity < 1 removes the line.
- DELETE /cart/{product_id} is idempotent (absent line → unchanged cart, 200).
- GET /cart never 404s; a user without a cart gets an empty one.
- GET /cart/totals runs the same calculator order creation uses, and returns the amount in
  minor units to pass to POST /payment/create-payment-intent.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from storefront.config import get_db, settings
from storefront.core.auth import get_principal
from storefront.core.security import ensure_can
from storefront.schemas.cart import AddItemBody, CartOut, CartTotalsOut, UpdateItemBody
from storefront.schemas.principal import Principal
from storefront.services import cart_service
from storefront.services.checkout import as_floats, calc_totals, to_minor_units

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.post("", response_model=CartOut)
def add_to_cart(payload: AddItemBody, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    ensure_can(principal, "cart:write")
    return cart_service.add_item(db, principal.uid, payload.product_id, payload.quantity)


@router.get("", response_model=CartOut)
def get_cart(principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return cart_service.get_cart(db, principal.uid)


@router.put("", response_model=CartOut)
def update_cart_item(payload: UpdateItemBody, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    ensure_can(principal, "cart:write")
    return cart_service.update_item(db, principal.uid, payload.product_id, payload.quantity)


@router.get("/totals", response_model=CartTotalsOut)
def cart_totals(
    currency: Optional[str] = Query(None, description="ISO currency code (default from settings)"),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    """Sepetin snapshot fiyatlarıyla checkout toplamı."""
    lines = cart_service.get_lines(db, principal.uid)
    totals = calc_totals(lines)
    cur = (currency or settings.default_currency).lower()
    return {
        "user_id": principal.uid,
        "total_quantity": sum(int(it.get("quantity", 0) or 0) for it in lines),
        **as_floats(totals),
        "currency": cur,
        "amount": to_minor_units(totals["total_price"], cur),
    }


@router.delete("/{product_id}", response_model=CartOut)
def remove_cart_item(product_id: str, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    """Remove one line by its product id (no error if it is not in the cart)."""
    ensure_can(principal, "cart:write")
    return cart_service.remove_item(db, principal.uid, product_id)


@router.delete("")
def clear_cart(principal: Principal = Depends(get_principal), db=Depends(get_db)):
    """Clear the entire cart (the cart document is kept)."""
    ensure_can(principal, "cart:write")
    cart_service.clear_cart(db, principal.uid)
    return {"message": "Cart cleared successfully"}
