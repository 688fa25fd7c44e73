"""
storefront/schemas/principal.py
Doğrulanmış çağıran.
"""
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, Field

Role = Literal["guest", "user", "admin"]


class Principal(BaseModel):
    uid: str = Field(..., description="Firebase UID (carts/{uid}, orders.user_id)")
    role: Role = Field(..., description="guest | user | admin")
    email: Optional[str] = Field(None, description="Siparişe customer_email olarak yazılır")
    display_name: Optional[str] = Field(None, description="Siparişe customer_name olarak yazılır")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_guest(self) -> bool:
        return self.role == "guest"

    def owns(self, resource: Optional[Mapping[str, Any]]) -> bool:
        return bool(resource) and resource.get("user_id") == self.uid
