# storefront/services/checkout.py
"""
Checkout tutar hesabı.

`calc_totals` is called both when the client asks for the amount to pay (GET /cart/totals)
and when an order is created; both must agree to the cent, so it only depends on its input
and the configured tax rate / shipping price.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Mapping, Optional

from storefront.config import settings

CENT = Decimal("0.01")

# Stripe "zero-decimal" para birimleri (tutar zaten en küçük birimde)
ZERO_DECIMAL_CURRENCIES = frozenset({
    "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
    "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
})


def to_money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def calc_totals(
    lines: Iterable[Mapping[str, Any]],
    *,
    tax_rate: Optional[Decimal] = None,
    shipping_price: Optional[Decimal] = None,
) -> Dict[str, Decimal]:
    """
    lines: {"price": ..., "quantity": ...} çiftleri.
    Dönüş: items_price, shipping_price, tax_price, total_price (Decimal, 2 hane).
    """
    rate = Decimal(str(settings.tax_rate if tax_rate is None else tax_rate))
    shipping = to_money(settings.shipping_price if shipping_price is None else shipping_price)

    items = sum(
        (Decimal(str(line["price"])) * int(line["quantity"]) for line in lines),
        Decimal("0"),
    ).quantize(CENT, rounding=ROUND_HALF_UP)
    tax = (items * rate).quantize(CENT, rounding=ROUND_HALF_UP)

    return {
        "items_price": items,
        "shipping_price": shipping,
        "tax_price": tax,
        "total_price": items + shipping + tax,
    }


def to_minor_units(amount: Decimal, currency: str) -> int:
    """Stripe'ın beklediği tam sayı tutar (cent, kuruş...)."""
    if (currency or "").lower() in ZERO_DECIMAL_CURRENCIES:
        return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def as_floats(totals: Mapping[str, Decimal]) -> Dict[str, float]:
    return {k: float(v) for k, v in totals.items()}
