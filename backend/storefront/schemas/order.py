# storefront/schemas/order.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import ConfigDict, Field

from storefront.schemas.base import _Base

# Sipariş (fulfillment) durumları
OrderStatus = Literal["Pending", "Processing", "Shipped", "Delivered", "Cancelled"]
ORDER_STATUSES = ("Pending", "Processing", "Shipped", "Delivered", "Cancelled")

PaymentStatus = Literal["pending", "paid", "failed"]


# (Input) teslimat/fatura bilgisi — zorunluluk kontrolü serviste
class BillingDetails(_Base):
    model_config = ConfigDict(extra="allow")

    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class TotalsIn(_Base):
    items_price: Optional[float] = None
    shipping_price: Optional[float] = None
    tax_price: Optional[float] = None
    total_price: Optional[float] = None


# (Input) sipariş oluşturma payload'ı
class OrderCreate(_Base):
    billing_details: BillingDetails = Field(default_factory=BillingDetails)
    payment_method: Optional[str] = None
    # İki farklı istemci şekli kabul edilir (düz productId / iç içe product)
    cart_items: List[Dict[str, Any]] = Field(default_factory=list)
    totals: Optional[TotalsIn] = None
    # Eski istemciler toplamları üst seviyede yollar
    items_price: Optional[float] = None
    shipping_price: Optional[float] = None
    tax_price: Optional[float] = None
    total_price: Optional[float] = None
    payment_intent_id: Optional[str] = None

    def submitted_totals(self) -> TotalsIn:
        if self.totals is not None:
            return self.totals
        return TotalsIn(
            items_price=self.items_price,
            shipping_price=self.shipping_price,
            tax_price=self.tax_price,
            total_price=self.total_price,
        )


class OrderCreated(_Base):
    order_id: str
    message: str = "Order placed successfully"


class OrderStatusPatch(_Base):
    status: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None
    is_paid: Optional[bool] = None
    is_delivered: Optional[bool] = None


class OrderLineOut(_Base):
    product_id: str
    name: str
    price: float
    quantity: int
    image: Optional[str] = None
    description: Optional[str] = None


class AddressOut(_Base):
    model_config = ConfigDict(extra="allow")

    address: str
    city: str
    postal_code: str
    country: str


class PaymentResultOut(_Base):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    status: Optional[str] = None
    update_time: Optional[str] = None
    email_address: Optional[str] = None


class PurchaserOut(_Base):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


# (Output) sipariş cevabı — tüm detaylarla
class OrderOut(_Base):
    id: str
    user_id: str
    user: Optional[PurchaserOut] = None
    order_items: List[OrderLineOut] = Field(default_factory=list)
    shipping_address: AddressOut
    payment_method: str
    payment_status: PaymentStatus = "pending"
    payment_intent_id: Optional[str] = None
    payment_result: Optional[PaymentResultOut] = None
    items_price: float
    shipping_price: float
    tax_price: float
    total_price: float
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    is_delivered: bool = False
    delivered_at: Optional[datetime] = None
    status: OrderStatus = "Pending"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderPage(_Base):
    orders: List[OrderOut]
    current_page: int
    total_pages: int
    total_orders: int


class OrderUpdated(_Base):
    message: str = "Order updated successfully"
    order: OrderOut


