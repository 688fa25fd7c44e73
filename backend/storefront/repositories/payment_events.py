"""
Eşleşen siparişi henüz olmayan ödeme bildirimleri (pending_payment_events/{event_id}).
"""
import time
from typing import Any, Dict, List, Optional

from google.cloud import firestore as gcf
from google.cloud.firestore_v1.base_query import FieldFilter

from storefront.config import collection

PENDING = "pending"
APPLIED = "applied"
DROPPED = "dropped"


def _col(db):
    return db.collection(collection("pending_payment_events"))


def now_ts() -> int:
    return int(time.time())


def park(
    db,
    event_id: str,
    event_type: str,
    intent: Dict[str, Any],
    ttl_seconds: int,
    created: Optional[int] = None,
) -> None:
    """created: Stripe olayının oluşma zamanı (unix); tekrar uygulama sırası buna göre."""
    _col(db).document(event_id).set({
        "event_id": event_id,
        "type": event_type,
        "payment_intent_id": intent.get("id"),
        "intent": intent,
        "state": PENDING,
        "attempts": 0,
        "created": int(created or now_ts()),
        "received_at": gcf.SERVER_TIMESTAMP,
        "expires_at_unix": now_ts() + ttl_seconds,
    })


def get(db, event_id: str) -> Optional[Dict[str, Any]]:
    doc = _col(db).document(event_id).get()
    return doc.to_dict() if doc.exists else None


def list_pending(db, payment_intent_id: Optional[str] = None) -> List[Dict[str, Any]]:
    q = _col(db).where(filter=FieldFilter("state", "==", PENDING))
    if payment_intent_id:
        q = q.where(filter=FieldFilter("payment_intent_id", "==", payment_intent_id))
    # Stripe sırası: eskiden yeniye (doküman id sırası değil)
    records = [d.to_dict() or {} for d in q.stream()]
    return sorted(records, key=lambda r: int(r.get("created") or 0))


def increment_attempt(db, event_id: str) -> None:
    _col(db).document(event_id).update({"attempts": gcf.Increment(1)})


def mark(db, event_id: str, state: str) -> None:
    _col(db).document(event_id).update({
        "state": state,
        "resolved_at": gcf.SERVER_TIMESTAMP,
    })
