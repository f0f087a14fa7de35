"""
LexGate - Principal

The authenticated actor of a request.

Roles:
   - Lawyer: legal judgement, draft approval, all external sends
   - Staff: client contact and document handling (administrative messages only)
   - Client: own case, document submission
   - Tech Support: system maintenance, no access to case content
   - Admin: user and system management, never legal authority

A Principal is built by the identity provider at authentication time and is
immutable for the lifetime of the request. It is never persisted.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, FrozenSet, Optional

if TYPE_CHECKING:
    from lexgate.utils.permissions import Permission


class Role(str, Enum):
    """Exactly one role per principal."""
    LAWYER = "LAWYER"
    STAFF = "STAFF"
    CLIENT = "CLIENT"
    TECH_SUPPORT = "TECH_SUPPORT"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Principal:
    """Authenticated principal scoped to one tenant."""
    id: uuid.UUID
    tenant_id: uuid.UUID
    role: Role
    license_number: Optional[str] = None
    # Time-boxed elevation granted out of band (tech support incident access).
    # Distinct from role: it never changes what the role itself carries.
    elevated_until: Optional[datetime] = None
    email: Optional[str] = None
    name: Optional[str] = None

    def __post_init__(self):
        if self.license_number and self.role != Role.LAWYER:
            raise ValueError("license_number is only valid for lawyer principals")

    @property
    def permissions(self) -> FrozenSet["Permission"]:
        from lexgate.utils.permissions import permissions_for
        return permissions_for(self.role)

    def is_elevated(self, now: Optional[datetime] = None) -> bool:
        if self.elevated_until is None:
            return False
        now = now or datetime.now(timezone.utc)
        until = self.elevated_until
        if until.tzinfo is None:
            until = until.replace(tzinfo=timezone.utc)
        return now < until
