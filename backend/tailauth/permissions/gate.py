"""
AuthorizationGate: per-operation allow/deny decisions.

The gate resolves the caller's role and account scope, gathers resource
facts from the store and evaluates the catalog and access checks. Denials
are returned as ``Decision`` values, never raised. Only missing input
(no caller id, no resource id) and unknown resources raise.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Protocol

from tailauth.core.config import settings
from tailauth.core.logging import authz_logger

from .checks import can_access_project, can_access_task, can_change_role, can_manage_user
from .constants import Permission
from .exceptions import InvalidRoleState, MissingResourceId, ResourceNotFound
from .repository import AuthorizationStore
from .resolver import resolve_account_scope, resolve_role
from .roles import Role, coerce_role
from .service import permission_service


class ResourceKind(str, Enum):
    PROJECT = "project"
    TASK = "task"


class ResourceAction(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"


class DenialCode(str, Enum):
    MISSING_PERMISSION = "missing_permission"
    PREDICATE_FAILED = "predicate_failed"
    INVALID_ROLE_STATE = "invalid_role_state"


# Any one of the listed permissions satisfies the action
RESOURCE_ACTION_PERMISSIONS: dict[tuple[ResourceKind, ResourceAction], tuple[Permission, ...]] = {
    (ResourceKind.PROJECT, ResourceAction.VIEW): (Permission.VIEW_ALL_PROJECTS, Permission.VIEW_ASSIGNED_PROJECTS),
    (ResourceKind.PROJECT, ResourceAction.EDIT): (Permission.EDIT_ALL_PROJECTS, Permission.EDIT_ASSIGNED_PROJECTS),
    (ResourceKind.PROJECT, ResourceAction.DELETE): (Permission.DELETE_ALL_PROJECTS,),
    (ResourceKind.TASK, ResourceAction.VIEW): (Permission.VIEW_ALL_TASKS, Permission.VIEW_ASSIGNED_TASKS),
    (ResourceKind.TASK, ResourceAction.EDIT): (Permission.EDIT_ALL_TASKS, Permission.EDIT_ASSIGNED_TASKS),
    (ResourceKind.TASK, ResourceAction.DELETE): (Permission.DELETE_ALL_TASKS,),
}

RESOURCE_PREDICATES = {
    ResourceKind.PROJECT: ("can_access_project", can_access_project),
    ResourceKind.TASK: ("can_access_task", can_access_task),
}


@dataclass(frozen=True)
class AuthorizationContext:
    """Resolved caller state threaded explicitly to the next step."""
    user_id: str
    role: Role
    account_id: str


@dataclass(frozen=True)
class ResourceFacts:
    kind: ResourceKind
    resource_id: str
    owner_account_id: Optional[str]
    assignees: frozenset[str] = field(default_factory=frozenset)

    def is_assigned(self, user_id: str) -> bool:
        return user_id in self.assignees


@dataclass(frozen=True)
class DenialReason:
    code: DenialCode
    role: Optional[Role]
    permission: Optional[Permission] = None
    predicate: Optional[str] = None

    def describe(self) -> str:
        role = self.role.value if self.role else "unknown"
        if self.code == DenialCode.MISSING_PERMISSION:
            return f"Missing permission: {self.permission.value} (role={role})"
        if self.code == DenialCode.INVALID_ROLE_STATE:
            return "Role could not be resolved"
        return f"Access check failed: {self.predicate} (role={role})"

    def as_dict(self) -> dict:
        return {
            "code": self.code.value,
            "role": self.role.value if self.role else None,
            "permission": self.permission.value if self.permission else None,
            "predicate": self.predicate,
        }


@dataclass(frozen=True)
class Decision:
    allowed: bool
    role: Optional[Role]
    reason: Optional[DenialReason] = None
    context: Optional[AuthorizationContext] = None

    @classmethod
    def allow(cls, context: AuthorizationContext) -> "Decision":
        return cls(allowed=True, role=context.role, context=context)

    @classmethod
    def deny(cls, reason: DenialReason, context: Optional[AuthorizationContext] = None) -> "Decision":
        return cls(allowed=False, role=reason.role, reason=reason, context=context)


class DecisionSink(Protocol):
    def record(self, operation: str, user_id: str, decision: Decision) -> None:
        ...


class ErrorReporter(Protocol):
    def report(self, error: Exception, **context) -> None:
        ...


class LoggingDecisionSink:
    def __init__(self, logger=authz_logger):
        self.logger = logger

    def record(self, operation: str, user_id: str, decision: Decision) -> None:
        if decision.allowed:
            self.logger.debug(
                f"[AUTHZ] allow {operation}",
                user_id=user_id,
                role=decision.role.value if decision.role else None,
            )
        else:
            self.logger.info(
                f"[AUTHZ] deny {operation}",
                user_id=user_id,
                **decision.reason.as_dict(),
            )


class LoggingErrorReporter:
    def __init__(self, logger=authz_logger):
        self.logger = logger

    def report(self, error: Exception, **context) -> None:
        self.logger.error("[AUTHZ] data integrity problem", error=error, **context)


class AuthorizationGate:
    """Stateless decision function over a store snapshot.

    One gate may serve one request or many; it keeps no per-user state and
    re-reads membership facts on every call.
    """

    def __init__(
        self,
        store: AuthorizationStore,
        *,
        owner_resolution: Optional[str] = None,
        sink: Optional[DecisionSink] = None,
        error_reporter: Optional[ErrorReporter] = None,
    ):
        self.store = store
        self.owner_resolution = owner_resolution or settings.OWNER_RESOLUTION
        self.sink = sink or LoggingDecisionSink()
        self.error_reporter = error_reporter or LoggingErrorReporter()

    # Resolution

    async def resolve_role(self, user_id: str) -> Role:
        return await resolve_role(self.store, user_id, self.owner_resolution)

    async def resolve_account_scope(self, user_id: str) -> str:
        return await resolve_account_scope(self.store, user_id)

    async def resolve_context(self, user_id: str) -> AuthorizationContext:
        role = await self.resolve_role(user_id)
        account_id = await self.resolve_account_scope(user_id)
        return AuthorizationContext(user_id=user_id, role=role, account_id=account_id)

    async def _context_or_denial(self, operation: str, user_id: str):
        try:
            return await self.resolve_context(user_id), None
        except InvalidRoleState as e:
            self.error_reporter.report(e, operation=operation, user_id=user_id)
            decision = Decision.deny(DenialReason(DenialCode.INVALID_ROLE_STATE, role=None))
            return None, self._finish(operation, user_id, decision)

    def _finish(self, operation: str, user_id: str, decision: Decision) -> Decision:
        self.sink.record(operation, user_id, decision)
        return decision

    def _require_any(
        self,
        context: AuthorizationContext,
        permissions: Iterable[Permission],
    ) -> Optional[DenialReason]:
        permissions = tuple(permissions)
        if any(permission_service.has_permission(context.role, p) for p in permissions):
            return None
        return DenialReason(DenialCode.MISSING_PERMISSION, role=context.role, permission=permissions[0])

    # Coarse permission checks

    async def authorize(self, user_id: str, permission: Permission) -> Decision:
        """Check a catalog permission (team, billing, account settings, reports)."""
        operation = f"permission:{Permission(permission).value}"
        context, denied = await self._context_or_denial(operation, user_id)
        if denied:
            return denied

        reason = self._require_any(context, (Permission(permission),))
        if reason:
            return self._finish(operation, user_id, Decision.deny(reason, context))
        return self._finish(operation, user_id, Decision.allow(context))

    # Resource checks

    async def load_resource(self, kind: ResourceKind, resource_id: Optional[str]) -> ResourceFacts:
        kind = ResourceKind(kind)
        if not resource_id:
            raise MissingResourceId(kind.value)
        record = await self.store.get_resource_owner_and_assignment(kind.value, resource_id)
        if record is None:
            raise ResourceNotFound(kind.value, resource_id)
        return ResourceFacts(
            kind=kind,
            resource_id=resource_id,
            owner_account_id=record.owner_account_id,
            assignees=frozenset(record.assignees),
        )

    async def authorize_resource(
        self,
        user_id: str,
        facts: ResourceFacts,
        action: ResourceAction = ResourceAction.VIEW,
    ) -> Decision:
        """Decide whether ``user_id`` may perform ``action`` on a project or task."""
        if facts is None or not facts.resource_id:
            raise MissingResourceId("resource")
        action = ResourceAction(action)
        operation = f"{facts.kind.value}:{action.value}:{facts.resource_id}"
        context, denied = await self._context_or_denial(operation, user_id)
        if denied:
            return denied

        reason = self._require_any(context, RESOURCE_ACTION_PERMISSIONS[(facts.kind, action)])
        if reason:
            return self._finish(operation, user_id, Decision.deny(reason, context))

        is_assigned = facts.is_assigned(user_id)

        # OWNER/ADMIN reach covers their own account only
        within_account = facts.owner_account_id is not None and facts.owner_account_id in (
            context.account_id,
            context.user_id,
        )
        if not (within_account or is_assigned):
            reason = DenialReason(DenialCode.PREDICATE_FAILED, role=context.role, predicate="account_boundary")
            return self._finish(operation, user_id, Decision.deny(reason, context))

        predicate_name, predicate = RESOURCE_PREDICATES[facts.kind]
        if not predicate(context.role, facts.owner_account_id, user_id, is_assigned):
            reason = DenialReason(DenialCode.PREDICATE_FAILED, role=context.role, predicate=predicate_name)
            return self._finish(operation, user_id, Decision.deny(reason, context))
        return self._finish(operation, user_id, Decision.allow(context))

    async def authorize_project(
        self, user_id: str, project_id: str, action: ResourceAction = ResourceAction.VIEW
    ) -> Decision:
        facts = await self.load_resource(ResourceKind.PROJECT, project_id)
        return await self.authorize_resource(user_id, facts, action)

    async def authorize_task(
        self, user_id: str, task_id: str, action: ResourceAction = ResourceAction.VIEW
    ) -> Decision:
        facts = await self.load_resource(ResourceKind.TASK, task_id)
        return await self.authorize_resource(user_id, facts, action)

    # Team management

    async def authorize_user_management(
        self,
        manager_id: str,
        target_user_id: str,
        permission: Permission = Permission.REMOVE_TEAM_MEMBERS,
    ) -> Decision:
        """Manager needs ``permission`` and reach over the target's role in the same account.

        The denial never says why the target is out of reach.
        """
        if not target_user_id:
            raise MissingResourceId("user")
        operation = f"manage_user:{target_user_id}"
        context, denied = await self._context_or_denial(operation, manager_id)
        if denied:
            return denied

        reason = self._require_any(context, (permission,))
        if reason:
            return self._finish(operation, manager_id, Decision.deny(reason, context))

        try:
            target = await self.resolve_context(target_user_id)
        except InvalidRoleState as e:
            self.error_reporter.report(e, operation=operation, user_id=manager_id)
            reason = DenialReason(DenialCode.INVALID_ROLE_STATE, role=context.role)
            return self._finish(operation, manager_id, Decision.deny(reason, context))

        if target.account_id != context.account_id or target.user_id == context.user_id:
            reason = DenialReason(DenialCode.PREDICATE_FAILED, role=context.role, predicate="can_manage_user")
            return self._finish(operation, manager_id, Decision.deny(reason, context))

        if not can_manage_user(context.role, target.role):
            reason = DenialReason(DenialCode.PREDICATE_FAILED, role=context.role, predicate="can_manage_user")
            return self._finish(operation, manager_id, Decision.deny(reason, context))
        return self._finish(operation, manager_id, Decision.allow(context))

    async def authorize_role_change(self, changer_id: str, current_role, new_role) -> Decision:
        """``current_role`` is the stored role of the membership being changed."""
        operation = f"change_role:{current_role}->{new_role}"
        context, denied = await self._context_or_denial(operation, changer_id)
        if denied:
            return denied

        reason = self._require_any(context, (Permission.CHANGE_TEAM_ROLES,))
        if reason:
            return self._finish(operation, changer_id, Decision.deny(reason, context))

        if coerce_role(current_role) is None:
            self.error_reporter.report(
                InvalidRoleState(changer_id, current_role), operation=operation, user_id=changer_id
            )
            reason = DenialReason(DenialCode.INVALID_ROLE_STATE, role=context.role)
            return self._finish(operation, changer_id, Decision.deny(reason, context))

        if not can_manage_user(context.role, current_role):
            reason = DenialReason(DenialCode.PREDICATE_FAILED, role=context.role, predicate="can_manage_user")
            return self._finish(operation, changer_id, Decision.deny(reason, context))

        if not can_change_role(current_role, new_role, context.role):
            reason = DenialReason(DenialCode.PREDICATE_FAILED, role=context.role, predicate="can_change_role")
            return self._finish(operation, changer_id, Decision.deny(reason, context))
        return self._finish(operation, changer_id, Decision.allow(context))
