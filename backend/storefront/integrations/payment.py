"""
storefront/integrations/payment.py - Payment gateway (Stripe) integration.

Creates PaymentIntents for card checkouts and verifies the signed webhook notifications
Stripe sends back when an intent succeeds or fails.
"""
import json
from typing import Any, Dict, Optional

import stripe
import structlog

from storefront.config import settings
from storefront.core.errors import PaymentProviderError, SignatureVerificationError, ValidationError

logger = structlog.get_logger(__name__)


def create_payment_intent(user_id: str, amount: Any, currency: Optional[str]) -> Dict[str, str]:
    """
    Stripe'ta PaymentIntent oluşturur.
    - amount: en küçük para biriminde (cent), yuvarlanır.
    - metadata.userId: sahibi olan kullanıcı.

    Returns {"client_secret", "payment_intent_id"}.
    """
    if amount is None or not currency:
        raise ValidationError("Amount and currency are required")
    try:
        amount_minor = int(round(float(amount)))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Amount must be a number")
    if amount_minor < 1:
        raise ValidationError("Amount must be positive")

    if not settings.stripe_secret_key:
        logger.error("stripe_not_configured")
        raise PaymentProviderError("Payment provider is not configured")

    try:
        intent = stripe.PaymentIntent.create(
            api_key=settings.stripe_secret_key,
            amount=amount_minor,
            currency=currency.lower(),
            payment_method_types=["card"],
            metadata={"userId": user_id},
        )
    except stripe.StripeError as exc:
        logger.error("payment_intent_create_failed", user_id=user_id, error=str(exc))
        raise PaymentProviderError(getattr(exc, "user_message", None) or str(exc) or None)

    logger.info("payment_intent_created", user_id=user_id, payment_intent_id=intent.id, amount=amount_minor)
    return {"client_secret": intent.client_secret, "payment_intent_id": intent.id}


def verify_and_parse_webhook(
    raw_body: bytes,
    signature_header: Optional[str],
    endpoint_secret: Optional[str],
    tolerance: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Stripe-Signature başlığını ham gövde üzerinden doğrular ve olayı dict olarak döndürür.
    Gövde parse edilmeden (byte byte) gelmelidir; imza tam olarak bu baytlar üzerindedir.
    """
    if not signature_header:
        raise SignatureVerificationError("Webhook Error: missing Stripe-Signature header")
    if not endpoint_secret:
        logger.error("stripe_webhook_secret_missing")
        raise SignatureVerificationError("Webhook Error: endpoint secret is not configured")

    try:
        payload = raw_body.decode("utf-8") if isinstance(raw_body, (bytes, bytearray)) else raw_body
        stripe.WebhookSignature.verify_header(
            payload,
            signature_header,
            endpoint_secret,
            settings.stripe_webhook_tolerance if tolerance is None else tolerance,
        )
        event = json.loads(payload)
    except stripe.SignatureVerificationError as exc:
        logger.warning("webhook_signature_invalid", error=str(exc))
        raise SignatureVerificationError(f"Webhook Error: {exc}")
    except (UnicodeDecodeError, ValueError) as exc:
        logger.warning("webhook_payload_invalid", error=str(exc))
        raise SignatureVerificationError(f"Webhook Error: {exc}")

    if not isinstance(event, dict) or "type" not in event:
        raise SignatureVerificationError("Webhook Error: malformed event")
    return event
