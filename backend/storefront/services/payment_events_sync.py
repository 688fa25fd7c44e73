# storefront/services/payment_events_sync.py
from __future__ import annotations

import structlog
from google.api_core.exceptions import GoogleAPICallError

from storefront.config import get_db
from storefront.services.payment_reconciler import replay_pending

logger = structlog.get_logger(__name__)


def sync_pending_payment_events_once() -> int:
    """
    Siparişi geç oluşan ödeme bildirimlerini tekrar dener (scheduler job).
    Dönüş: uygulanan bildirim sayısı.
    """
    try:
        applied = replay_pending(get_db())
    except GoogleAPICallError as exc:
        logger.error("payment_events_sync_failed", error=str(exc))
        return 0
    if applied:
        logger.info("payment_events_synced", applied=applied)
    return applied
