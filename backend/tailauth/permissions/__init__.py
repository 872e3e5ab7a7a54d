"""
Authorization and account-scoping engine.

Role is computed per call from team-membership facts, never stored:
    caller id -> resolve_role + resolve_account_scope
              -> access checks over resource facts
              -> AuthorizationGate decision
"""
from tailauth.permissions.constants import Permission
from tailauth.permissions.roles import Role
from tailauth.permissions.service import permission_service
from tailauth.permissions.gate import (
    AuthorizationContext,
    AuthorizationGate,
    Decision,
    DenialReason,
    ResourceAction,
    ResourceFacts,
    ResourceKind,
)

__all__ = [
    "Permission",
    "Role",
    "permission_service",
    "AuthorizationContext",
    "AuthorizationGate",
    "Decision",
    "DenialReason",
    "ResourceAction",
    "ResourceFacts",
    "ResourceKind",
]
