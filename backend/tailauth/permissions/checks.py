"""
Access predicates.

Pure functions over resolved roles and resource facts. Every branch that
does not explicitly allow returns False, including unknown roles and
missing ownership facts.
"""
from typing import Optional

from .roles import Role, coerce_role


def can_manage_user(manager_role, target_role) -> bool:
    """OWNER manages ADMIN and MEMBER, ADMIN manages MEMBER, nobody manages OWNER."""
    manager = coerce_role(manager_role)
    target = coerce_role(target_role)
    if manager is None or target is None:
        return False

    if target == Role.OWNER:
        return False
    if manager == Role.OWNER:
        return True
    if manager == Role.ADMIN and target == Role.MEMBER:
        return True
    return False


def _can_access_scoped_resource(
    role,
    owner_account_id: Optional[str],
    requester_id: Optional[str],
    is_assigned: bool,
) -> bool:
    resolved = coerce_role(role)
    if resolved in (Role.OWNER, Role.ADMIN):
        return True
    if resolved == Role.MEMBER:
        if is_assigned is True:
            return True
        return owner_account_id is not None and owner_account_id == requester_id
    return False


def can_access_project(
    role,
    project_owner_account_id: Optional[str],
    requester_id: Optional[str],
    is_assigned: bool = False,
) -> bool:
    """OWNER and ADMIN see every project; MEMBER only assigned or own ones."""
    return _can_access_scoped_resource(role, project_owner_account_id, requester_id, is_assigned)


def can_access_task(
    role,
    task_owner_account_id: Optional[str],
    requester_id: Optional[str],
    is_assigned: bool = False,
) -> bool:
    """Same rule as projects, with the owning account taken from the parent project."""
    return _can_access_scoped_resource(role, task_owner_account_id, requester_id, is_assigned)


def can_change_role(current_role, new_role, changer_role) -> bool:
    current = coerce_role(current_role)
    new = coerce_role(new_role)
    changer = coerce_role(changer_role)
    if current is None or new is None or changer is None:
        return False

    # OWNER is immutable and is never granted through a role change
    if current == Role.OWNER or new == Role.OWNER:
        return False
    # Only OWNER promotes to ADMIN
    if new == Role.ADMIN and changer != Role.OWNER:
        return False
    if changer == Role.OWNER:
        return True
    if changer == Role.ADMIN and new == Role.MEMBER:
        return True
    return False
