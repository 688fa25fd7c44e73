#!/usr/bin/env python3
"""
Firebase Admin SDK ile kullanıcıya admin custom claim ekler (veya kaldırır).

Usage: python set_admin_claim.py <user_email> [--revoke]
The user must sign out and sign in again for the new claim to reach their ID token.
"""
import sys

import structlog
from firebase_admin import auth

from storefront.config import get_firebase_app

logger = structlog.get_logger("set_admin_claim")


def set_admin_claim(user_email: str, admin: bool = True) -> bool:
    """Kullanıcının custom claim'lerine admin=True/False yazar; diğer claim'ler korunur."""
    app = get_firebase_app()
    try:
        user = auth.get_user_by_email(user_email, app=app)
    except auth.UserNotFoundError:
        logger.error("user_not_found", email=user_email)
        return False

    claims = dict(user.custom_claims or {})
    if admin:
        claims["admin"] = True
    else:
        claims.pop("admin", None)
    auth.set_custom_user_claims(user.uid, claims or None, app=app)
    logger.info("admin_claim_set", uid=user.uid, email=user_email, admin=admin)
    return True


def main(argv) -> int:
    args = [a for a in argv if not a.startswith("--")]
    if len(args) != 1:
        print("Usage: python set_admin_claim.py <user_email> [--revoke]")
        return 1
    return 0 if set_admin_claim(args[0], admin="--revoke" not in argv) else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
