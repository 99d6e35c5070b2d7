"""
Role and vendor resolution for the marketplace core.

The authentication layer supplies a Django user; everything below the views works
with an ``Actor`` resolved once per operation.
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_VENDOR = "vendor"
ROLE_CUSTOMER = "customer"


@dataclass(frozen=True)
class Actor:
    user_id: Optional[int]
    email: str
    is_admin: bool = False
    store_id: Optional[str] = None

    @property
    def role(self) -> str:
        if self.is_admin:
            return ROLE_ADMIN
        if self.store_id:
            return ROLE_VENDOR
        return ROLE_CUSTOMER

    @property
    def is_vendor(self) -> bool:
        return self.store_id is not None

    def can_access_store(self, store_id) -> bool:
        return self.is_admin or (self.store_id is not None and str(self.store_id) == str(store_id))

    def require_vendor_or_admin(self):
        """Raise PermissionDenied unless the actor is an admin or owns a store."""
        from marketplace.services.exceptions import PermissionDenied

        if not self.is_admin and not self.is_vendor:
            logger.warning(f"RBAC denial: user_id={self.user_id} has no store")
            raise PermissionDenied("Vendor not found")

    def require_admin(self):
        from marketplace.services.exceptions import PermissionDenied

        if not self.is_admin:
            logger.warning(f"RBAC denial: user_id={self.user_id} is not an admin")
            raise PermissionDenied("Admin access required")


SYSTEM_ACTOR = Actor(user_id=None, email="system@goldenmarket.local", is_admin=True)


def is_admin(user) -> bool:
    """Consistent admin check across the codebase."""
    if not getattr(user, "is_authenticated", False):
        return False
    return bool(getattr(user, "is_superuser", False) or getattr(user, "is_staff", False))


def resolve_actor(user) -> Actor:
    """Map an authenticated user to ``{is_admin, store_id}``. The vendor store is the first store the user owns."""
    from marketplace.catalog.domain.models.catalog import Store

    if not getattr(user, "is_authenticated", False):
        return Actor(user_id=None, email="")

    store_id = Store.objects.filter(owner_id=user.pk, is_active=True).order_by("created_at").values_list("id", flat=True).first()
    return Actor(
        user_id=user.pk,
        email=(getattr(user, "email", "") or "").strip(),
        is_admin=is_admin(user),
        store_id=str(store_id) if store_id else None,
    )
