# storefront/routers/payment.py
from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from storefront.config import get_db, settings
from storefront.core.auth import get_principal
from storefront.core.security import ensure_can
from storefront.integrations.payment import create_payment_intent, verify_and_parse_webhook
from storefront.schemas.payment import PaymentIntentCreate, PaymentIntentOut, WebhookAck
from storefront.schemas.principal import Principal
from storefront.services.payment_reconciler import handle_webhook_event

router = APIRouter(prefix="/payment", tags=["Payment"])


@router.post("/create-payment-intent", response_model=PaymentIntentOut)
def create_intent(payload: PaymentIntentCreate, principal: Principal = Depends(get_principal)):
    ensure_can(principal, "payment:create")
    return create_payment_intent(principal.uid, payload.amount, payload.currency)


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None),
    db=Depends(get_db),
):
    """
    Kimlik doğrulaması yok; Stripe-Signature ile doğrulanır.
    Gövde model ile parse edilmez, imza ham baytlar üzerinden kontrol edilir.
    """
    raw_body = await request.body()
    event = verify_and_parse_webhook(raw_body, stripe_signature, settings.stripe_webhook_secret)
    await run_in_threadpool(handle_webhook_event, db, event)
    return {"received": True}
