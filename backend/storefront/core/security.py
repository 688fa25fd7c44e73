"""
# `storefront/core/security.py` — Yetkilendirme

Authorization for the storefront is a single policy function, `can_perform(principal, action, resource)`.
Endpoints call `ensure_can(...)` (raises `Forbidden`) or depend on `require(action)` instead of
testing role flags inline, so every admin-only operation goes through the same table.

| Action          | admin | user                 | guest |
|-----------------|-------|----------------------|-------|
| `cart:write`    | ✔     | ✔                    | ✔     |
| `order:create`  | ✔     | ✔                    | ✖     |
| `payment:create`| ✔     | ✔                    | ✖     |
| `order:read`    | ✔     | only own orders      | only own orders |
| `order:list`    | ✔     | ✖                    | ✖     |
| `order:update`  | ✔     | ✖                    | ✖     |
| `order:delete`  | ✔     | ✖                    | ✖     |
| `product:write` | ✔     | ✖                    | ✖     |
"""
from typing import Any, Dict, Optional
from fastapi import Depends
from storefront.core.auth import get_principal
from storefront.core.errors import Forbidden
from storefront.schemas.principal import Principal

ADMIN_ONLY = {"order:list", "order:update", "order:delete", "product:write"}
NON_GUEST = {"order:create", "payment:create"}
OWNER_OR_ADMIN = {"order:read"}
ANY_CALLER = {"cart:write"}


def can_perform(principal: Optional[Principal], action: str, resource: Optional[Dict[str, Any]] = None) -> bool:
    if principal is None:
        return False
    if principal.is_admin:
        return True
    if action in ADMIN_ONLY:
        return False
    if action in NON_GUEST:
        return not principal.is_guest
    if action in OWNER_OR_ADMIN:
        return principal.owns(resource)
    return action in ANY_CALLER


def ensure_can(principal: Optional[Principal], action: str, resource: Optional[Dict[str, Any]] = None) -> None:
    if not can_perform(principal, action, resource):
        if action in ADMIN_ONLY:
            raise Forbidden("Admin access required")
        raise Forbidden("You are not allowed to perform this action")


def require(action: str):
    """
    Resource-independent actions için FastAPI dependency üretir.
    Örn: `dependencies=[Depends(require("product:write"))]`
    """
    def _dependency(principal: Principal = Depends(get_principal)) -> Principal:
        ensure_can(principal, action)
        return principal
    return _dependency
