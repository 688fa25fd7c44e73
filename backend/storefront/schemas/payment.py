"""
storefront/schemas/payment.py - Stripe ödeme şemaları.
"""
from typing import Optional

from storefront.schemas.base import _Base


class PaymentIntentCreate(_Base):
    # Eksik alanlar ValidationError ile servis katmanında yakalanır
    amount: Optional[float] = None
    currency: Optional[str] = None


class PaymentIntentOut(_Base):
    client_secret: str
    payment_intent_id: str


class WebhookAck(_Base):
    received: bool = True
