"""
storefront/config.py - Application configuration and Firebase initialization.

This module defines a Pydantic BaseSettings class to load configuration from environment,
and lazily initializes the Firebase Admin SDK (Firestore DB) using the provided credentials.
Routers receive the Firestore client through the `get_db` dependency.
"""
from decimal import Decimal
from functools import lru_cache
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""
    firebase_cred_file: str = 'firebase_service_account.json'
    firebase_project_id: Optional[str] = None
    firebase_collection_prefix: str = ''

    # Firebase credentials from environment variables (for Cloud Run)
    firebase_private_key_id: Optional[str] = None
    firebase_private_key: Optional[str] = None
    firebase_client_email: Optional[str] = None
    firebase_client_id: Optional[str] = None
    firebase_auth_uri: Optional[str] = None
    firebase_token_uri: Optional[str] = None
    firebase_auth_provider_x509_cert_url: Optional[str] = None
    firebase_client_x509_cert_url: Optional[str] = None

    stripe_secret_key: str = ''
    stripe_webhook_secret: str = ''
    stripe_webhook_tolerance: int = 300
    default_currency: str = 'usd'

    # Checkout policy
    tax_rate: Decimal = Field(Decimal('0.10'), ge=0)
    shipping_price: Decimal = Field(Decimal('0'), ge=0)

    # Late payment notifications (webhook arrives before the order exists)
    payment_event_retry_enabled: bool = True
    payment_event_retry_minutes: int = 2
    payment_event_retry_window_seconds: int = 3600

    debug: bool = False
    log_level: str = 'INFO'
    allowed_origins: str = '*'  # Comma-separated list or '*' for all

    model_config = SettingsConfigDict(env_file='.env', case_sensitive=False, extra='ignore')


# Load settings from environment (.env file, etc.)
settings = Settings()


def collection(name: str) -> str:
    """Prefix-aware collection name (FIREBASE_COLLECTION_PREFIX)."""
    prefix = (settings.firebase_collection_prefix or '').strip()
    return f"{prefix}{name}" if prefix else name


def _credentials():
    # Cloud Run: full service account passed through the environment
    if all([
        settings.firebase_private_key_id,
        settings.firebase_private_key,
        settings.firebase_client_email,
        settings.firebase_client_id,
        settings.firebase_auth_uri,
        settings.firebase_token_uri,
        settings.firebase_auth_provider_x509_cert_url,
        settings.firebase_client_x509_cert_url,
    ]):
        return credentials.Certificate({
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "private_key_id": settings.firebase_private_key_id,
            "private_key": settings.firebase_private_key.replace("\\n", "\n"),
            "client_email": settings.firebase_client_email,
            "client_id": settings.firebase_client_id,
            "auth_uri": settings.firebase_auth_uri,
            "token_uri": settings.firebase_token_uri,
            "auth_provider_x509_cert_url": settings.firebase_auth_provider_x509_cert_url,
            "client_x509_cert_url": settings.firebase_client_x509_cert_url,
        })
    # Local development: service account file
    return credentials.Certificate(settings.firebase_cred_file)


def get_firebase_app() -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = {'projectId': settings.firebase_project_id} if settings.firebase_project_id else None
        return firebase_admin.initialize_app(_credentials(), options)


@lru_cache(maxsize=1)
def get_db():
    """Firestore client (FastAPI dependency; overridden in tests)."""
    return firestore.client(app=get_firebase_app())
