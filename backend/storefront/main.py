"""
# `storefront/main.py` — Ana Uygulama

## Genel Bilgi
FastAPI uygulamasının başlangıç noktası: router'lar eklenir, CORS ayarlanır, hata
handler'ları ve structlog yapılandırılır, arka plan scheduler'ı bağlanır.

## Router'lar
**Public / kimlik doğrulamalı:**
- `/products`
- `/cart`
- `/orders` (admin işlemleri `can_perform` ile korunur)
- `/payment` (`/payment/webhook` kimliksiz, Stripe imzalı)

**Admin (prefix `/admin`):**
- `/products`

## Arka Plan Scheduler
- **Kütüphane:** APScheduler (`AsyncIOScheduler`)
- **İş:** `sync_pending_payment_events_once` (siparişten önce gelen Stripe bildirimlerini tekrar dener)
- **Periyot:** `PAYMENT_EVENT_RETRY_MINUTES` (sadece `PAYMENT_EVENT_RETRY_ENABLED` ise)
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.config import settings
from storefront.core.errors import register_exception_handlers
from storefront.core.logging_setup import configure_logging
from storefront.routers import carts, orders, payment, products
from storefront.services.payment_events_sync import sync_pending_payment_events_once

configure_logging(settings.log_level, settings.debug)

# Tek bir scheduler instance'ı
scheduler = AsyncIOScheduler()

# Initialize FastAPI app
app = FastAPI(
    title="Storefront API",
    description="Catalog, cart, checkout, orders and Stripe payments for the storefront.",
    version="1.0.0",
    redirect_slashes=False,
)

# Configure CORS (allow front-end domain or all origins as specified)
allow_origins = [origin.strip() for origin in settings.allowed_origins.split(',')] if settings.allowed_origins else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(products.router)
app.include_router(carts.router)
app.include_router(orders.router)
app.include_router(payment.router)

app.include_router(products.admin_router, prefix="/admin")


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}


@app.on_event("startup")
async def _startup_scheduler():
    if not settings.payment_event_retry_enabled:
        return
    scheduler.add_job(
        sync_pending_payment_events_once,
        "interval",
        minutes=settings.payment_event_retry_minutes,
        id="payment-events-sync",
        replace_existing=True,
    )
    if not scheduler.running:
        scheduler.start()


@app.on_event("shutdown")
async def _shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)


# Run the app directly with uvicorn (for development)
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("storefront.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
