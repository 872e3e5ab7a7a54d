"""
Endpoint-level enforcement helpers.

Each dependency runs one gate decision and returns the caller's
AuthorizationContext, so handlers receive role and account scope as an
explicit value.
"""
from typing import Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tailauth.core.config import settings
from tailauth.core.security import get_current_user
from tailauth.db.database import get_db

from .constants import Permission
from .exceptions import InvalidRoleState, PermissionDenied, ResourceHidden
from .gate import (
    AuthorizationContext,
    AuthorizationGate,
    Decision,
    DenialCode,
    ResourceAction,
    ResourceKind,
)
from .repository import SQLAlchemyAuthorizationStore
from .roles import Role
from .service import permission_service


async def get_authorization_gate(db: AsyncSession = Depends(get_db)) -> AuthorizationGate:
    return AuthorizationGate(SQLAlchemyAuthorizationStore(db))


def raise_for_decision(
    decision: Decision,
    kind: Optional[ResourceKind] = None,
) -> AuthorizationContext:
    """Return the context of an allowed decision or raise the matching HTTP error.

    A MEMBER denied by a resource access check gets 404 when
    HIDE_FORBIDDEN_RESOURCES is on, so existence is not revealed.
    """
    if decision.allowed:
        return decision.context

    reason = decision.reason
    if (
        kind is not None
        and settings.HIDE_FORBIDDEN_RESOURCES
        and decision.role == Role.MEMBER
        and reason.code == DenialCode.PREDICATE_FAILED
    ):
        raise ResourceHidden(ResourceKind(kind).value)
    raise PermissionDenied(reason.describe(), role=decision.role.value if decision.role else None)


def ensure_permission(context: AuthorizationContext, permission: Permission) -> None:
    """Second permission check for handlers already past a resource check."""
    if not permission_service.has_permission(context.role, permission):
        raise PermissionDenied(
            f"Missing permission: {permission.value} (role={context.role.value})",
            role=context.role.value,
        )


async def get_authorization_context(
    current_user: dict = Depends(get_current_user),
    gate: AuthorizationGate = Depends(get_authorization_gate),
) -> AuthorizationContext:
    try:
        return await gate.resolve_context(current_user["user_id"])
    except InvalidRoleState as e:
        gate.error_reporter.report(e, operation="resolve_context", user_id=current_user["user_id"])
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "Role could not be resolved", "role": None},
        )


def require_permission(permission: Permission):
    async def dependency(
        current_user: dict = Depends(get_current_user),
        gate: AuthorizationGate = Depends(get_authorization_gate),
    ) -> AuthorizationContext:
        decision = await gate.authorize(current_user["user_id"], permission)
        return raise_for_decision(decision)

    return dependency


def require_project_access(action: ResourceAction = ResourceAction.VIEW):
    async def dependency(
        project_id: str,
        current_user: dict = Depends(get_current_user),
        gate: AuthorizationGate = Depends(get_authorization_gate),
    ) -> AuthorizationContext:
        decision = await gate.authorize_project(current_user["user_id"], project_id, action)
        return raise_for_decision(decision, kind=ResourceKind.PROJECT)

    return dependency


def require_task_access(action: ResourceAction = ResourceAction.VIEW):
    async def dependency(
        task_id: str,
        current_user: dict = Depends(get_current_user),
        gate: AuthorizationGate = Depends(get_authorization_gate),
    ) -> AuthorizationContext:
        decision = await gate.authorize_task(current_user["user_id"], task_id, action)
        return raise_for_decision(decision, kind=ResourceKind.TASK)

    return dependency
