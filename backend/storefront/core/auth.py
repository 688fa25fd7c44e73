# storefront/core/auth.py
"""
Firebase ID token → Principal.

Every storefront endpoint except the catalog reads and the Stripe webhook requires
`Authorization: Bearer <Firebase ID token>`. Role mapping:
- anonymous sign-in → guest (may fill a cart, may not check out)
- custom claim admin=True → admin (set with backend/set_admin_claim.py)
- everything else → user
"""
from typing import Optional

from fastapi import HTTPException, Request, status
from firebase_admin import auth as fb_auth

from storefront.config import get_firebase_app
from storefront.schemas.principal import Principal

# Doğrulama hataları → 401 mesajı (sıra önemli: alt sınıflar önce)
_TOKEN_ERRORS = (
    (fb_auth.ExpiredIdTokenError, "Token expired"),
    (fb_auth.RevokedIdTokenError, "Session revoked"),
    (fb_auth.UserDisabledError, "User account is disabled"),
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _bearer_token(request: Request) -> Optional[str]:
    scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _verify(id_token: str) -> dict:
    """Token imzası, süresi ve iptal durumu kontrol edilir."""
    try:
        return fb_auth.verify_id_token(id_token, app=get_firebase_app(), check_revoked=True)
    except (ValueError, fb_auth.InvalidIdTokenError, fb_auth.UserDisabledError, fb_auth.CertificateFetchError) as exc:
        for error_type, detail in _TOKEN_ERRORS:
            if isinstance(exc, error_type):
                raise _unauthorized(detail)
        raise _unauthorized(f"Invalid authentication token: {exc}")


def token_to_principal(decoded: dict) -> Principal:
    uid = decoded.get("uid") or decoded.get("user_id")
    if not uid:
        raise _unauthorized("Token missing uid.")

    provider = (decoded.get("firebase") or {}).get("sign_in_provider")
    if provider == "anonymous":
        role = "guest"
    elif decoded.get("admin") is True:
        role = "admin"
    else:
        role = "user"

    return Principal(uid=uid, role=role, email=decoded.get("email"), display_name=decoded.get("name"))


async def get_principal(request: Request) -> Principal:
    """FastAPI dependency: doğrulanmış çağıran (guest/user/admin)."""
    token = _bearer_token(request)
    if not token:
        raise _unauthorized("Missing Authorization header.")
    return token_to_principal(_verify(token))
