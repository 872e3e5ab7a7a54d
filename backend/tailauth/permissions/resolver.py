"""
Role and account-scope resolution.

Both are computed fresh from the store on every call. Nothing is cached
between calls, so a role change is visible on the next request.
"""
from typing import Optional

from .exceptions import Unauthenticated, InvalidRoleState
from .repository import AuthorizationStore, MembershipRecord
from .roles import Role, MEMBERSHIP_ROLES, coerce_role

OWNER_BY_MEMBERSHIP = "membership"
OWNER_BY_RESOURCE = "resource"


def _require_user_id(user_id: Optional[str]) -> str:
    if user_id is None or (isinstance(user_id, str) and not user_id.strip()):
        raise Unauthenticated()
    return user_id


def role_from_membership(user_id: str, membership: MembershipRecord) -> Role:
    role = coerce_role(membership.role)
    if role not in MEMBERSHIP_ROLES:
        raise InvalidRoleState(user_id, membership.role)
    return role


async def is_owner(
    store: AuthorizationStore,
    user_id: str,
    owner_resolution: str = OWNER_BY_MEMBERSHIP,
) -> bool:
    user_id = _require_user_id(user_id)
    if owner_resolution == OWNER_BY_RESOURCE:
        return await store.owns_any_resource(user_id)
    if owner_resolution == OWNER_BY_MEMBERSHIP:
        membership = await store.find_accepted_membership(user_id)
        return membership is None or membership.invited_by_user_id == user_id
    raise ValueError(f"Unknown owner resolution mode: {owner_resolution}")


async def resolve_role(
    store: AuthorizationStore,
    user_id: str,
    owner_resolution: str = OWNER_BY_MEMBERSHIP,
) -> Role:
    """Compute the effective role of ``user_id``.

    OWNER when the user is not an accepted member of another account (or,
    in ``resource`` mode, when they own at least one project). Otherwise
    the role on their ACCEPTED membership. Pending and declined records
    never contribute a role. With no membership and no ownership the user
    falls back to MEMBER, the least privileged role.

    Raises:
        Unauthenticated: ``user_id`` is empty.
        InvalidRoleState: the accepted membership carries an unknown role.
    """
    user_id = _require_user_id(user_id)
    if await is_owner(store, user_id, owner_resolution):
        return Role.OWNER

    membership = await store.find_accepted_membership(user_id)
    if membership is not None:
        return role_from_membership(user_id, membership)
    return Role.MEMBER


async def resolve_account_scope(store: AuthorizationStore, user_id: str) -> str:
    """Return the account id whose data ``user_id`` operates within.

    Every account-scoped query goes through this instead of the raw caller id.
    """
    user_id = _require_user_id(user_id)
    membership = await store.find_accepted_membership(user_id)
    if membership is not None and membership.invited_by_user_id:
        return membership.invited_by_user_id
    return user_id
