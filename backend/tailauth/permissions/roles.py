from enum import Enum
from typing import Optional


class Role(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


# Roles a TeamMembership record may carry; OWNER is inferred, never stored
MEMBERSHIP_ROLES = frozenset({Role.ADMIN, Role.MEMBER})


def coerce_role(value) -> Optional[Role]:
    """Return the Role for ``value`` or None when it is not a known role."""
    if isinstance(value, Role):
        return value
    if isinstance(value, str):
        try:
            return Role(value.upper())
        except ValueError:
            return None
    return None
