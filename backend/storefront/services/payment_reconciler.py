# storefront/services/payment_reconciler.py
"""
Stripe ödeme bildirimlerini siparişlere yansıtır.

Orders are matched by `payment_intent_id`. Applying the same event twice writes the same
values again (paid_at is kept once set), so redeliveries are harmless. Events whose order
does not exist yet are parked for a bounded window and replayed by `replay_pending`
(scheduler job and order creation); the reconciler never creates orders.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from google.api_core.exceptions import GoogleAPICallError
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from storefront.config import collection, settings
from storefront.repositories import payment_events

logger = structlog.get_logger(__name__)

SUCCEEDED = "payment_intent.succeeded"
FAILED = "payment_intent.payment_failed"
HANDLED_EVENTS = (SUCCEEDED, FAILED)

# Sonuçlar
APPLIED = "applied"
UNMATCHED = "unmatched"
PARKED = "parked"
IGNORED = "ignored"
ERROR = "error"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def find_order_by_intent(db, payment_intent_id: str):
    if not payment_intent_id:
        return None
    docs = list(
        db.collection(collection("orders"))
          .where(filter=FieldFilter("payment_intent_id", "==", payment_intent_id))
          .limit(1)
          .stream()
    )
    return docs[0] if docs else None


def _succeeded_patch(order: Dict[str, Any], intent: Dict[str, Any]) -> Dict[str, Any]:
    patch = {
        "payment_status": "paid",
        "is_paid": True,
        "payment_result": {
            "id": intent.get("id"),
            "status": intent.get("status"),
            "update_time": _now_iso(),
            "email_address": intent.get("receipt_email") or "",
        },
        "updated_at": SERVER_TIMESTAMP,
    }
    if not order.get("paid_at"):
        patch["paid_at"] = SERVER_TIMESTAMP
    return patch


def _failed_patch(intent: Dict[str, Any]) -> Dict[str, Any]:
    error = intent.get("last_payment_error") or {}
    return {
        "payment_status": "failed",
        "payment_result": {
            "id": intent.get("id"),
            "status": intent.get("status"),
            "update_time": _now_iso(),
            "error_message": error.get("message") if isinstance(error, dict) else None,
        },
        "updated_at": SERVER_TIMESTAMP,
    }


def apply_intent_event(db, event_type: str, intent: Dict[str, Any]) -> bool:
    """Olayı eşleşen siparişe uygular; sipariş yoksa False."""
    snap = find_order_by_intent(db, intent.get("id"))
    if snap is None:
        return False
    order = snap.to_dict() or {}
    if event_type == FAILED and order.get("is_paid"):
        # Önceki bir denemenin hatası ödenmiş siparişi geri almaz
        logger.info("payment_failure_ignored_order_paid", order_id=snap.id, payment_intent_id=intent.get("id"))
        return True
    patch = _succeeded_patch(order, intent) if event_type == SUCCEEDED else _failed_patch(intent)
    snap.reference.update(patch)
    logger.info(
        "order_payment_updated",
        order_id=snap.id,
        payment_intent_id=intent.get("id"),
        payment_status=patch["payment_status"],
    )
    return True


def reconcile(db, event: Dict[str, Any], *, park_unmatched: Optional[bool] = None) -> str:
    event_type = event.get("type")
    if event_type not in HANDLED_EVENTS:
        logger.info("webhook_event_ignored", event_type=event_type)
        return IGNORED

    intent = ((event.get("data") or {}).get("object")) or {}
    if apply_intent_event(db, event_type, intent):
        return APPLIED

    logger.warning("order_not_found_for_payment_intent", payment_intent_id=intent.get("id"), event_type=event_type)
    if park_unmatched is None:
        park_unmatched = settings.payment_event_retry_enabled
    if park_unmatched and event.get("id") and intent.get("id"):
        payment_events.park(
            db,
            event["id"],
            event_type,
            intent,
            settings.payment_event_retry_window_seconds,
            created=event.get("created"),
        )
        return PARKED
    return UNMATCHED


def handle_webhook_event(db, event: Dict[str, Any]) -> str:
    """
    Webhook giriş noktası: imza doğrulandıktan sonra çağrılır.
    Veritabanı hataları loglanır, yukarı taşınmaz (Stripe'a her durumda 200 dönülür).
    """
    try:
        return reconcile(db, event)
    except GoogleAPICallError as exc:
        logger.error("webhook_event_apply_failed", event_id=event.get("id"), error=str(exc))
        return ERROR


def replay_pending(db, payment_intent_id: Optional[str] = None) -> int:
    """
    Bekleyen bildirimleri tekrar dener. Süresi dolanlar 'dropped' olur.
    Dönüş: uygulanan bildirim sayısı.
    """
    applied = 0
    for rec in payment_events.list_pending(db, payment_intent_id):
        event_id = rec.get("event_id")
        if payment_events.now_ts() > int(rec.get("expires_at_unix", 0)):
            payment_events.mark(db, event_id, payment_events.DROPPED)
            logger.warning(
                "payment_event_dropped",
                event_id=event_id,
                payment_intent_id=rec.get("payment_intent_id"),
                attempts=rec.get("attempts", 0),
            )
            continue
        if apply_intent_event(db, rec.get("type"), rec.get("intent") or {}):
            payment_events.mark(db, event_id, payment_events.APPLIED)
            applied += 1
        else:
            payment_events.increment_attempt(db, event_id)
    return applied
