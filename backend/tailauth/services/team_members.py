"""
Team membership lifecycle: invite, accept, decline, change role, remove.

A membership moves PENDING -> ACCEPTED or PENDING -> DECLINED; both end
states are terminal. Every privileged step asks the AuthorizationGate
first, and every lookup is scoped to the caller's account.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tailauth.core.logging import team_logger
from tailauth.db.enums import MembershipStatus
from tailauth.db.models import TeamMembership, User
from tailauth.permissions.checks import can_manage_user
from tailauth.permissions.constants import Permission
from tailauth.permissions.gate import (
    AuthorizationContext,
    AuthorizationGate,
    Decision,
    DenialCode,
    DenialReason,
)
from tailauth.permissions.roles import MEMBERSHIP_ROLES, Role, coerce_role


class TeamMembershipError(Exception):
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MembershipNotFound(TeamMembershipError):
    status_code = 404


class MembershipConflict(TeamMembershipError):
    status_code = 409


class TeamActionDenied(TeamMembershipError):
    status_code = 403

    def __init__(self, decision: Decision):
        self.decision = decision
        super().__init__(decision.reason.describe())


def _ensure_allowed(decision: Decision) -> AuthorizationContext:
    if not decision.allowed:
        raise TeamActionDenied(decision)
    return decision.context


def _membership_role(value) -> Role:
    role = coerce_role(value)
    if role not in MEMBERSHIP_ROLES:
        raise TeamMembershipError("Role must be ADMIN or MEMBER")
    return role


async def _get_account_membership(
    db: AsyncSession, account_id: str, membership_id: str
) -> TeamMembership:
    result = await db.execute(
        select(TeamMembership).where(
            TeamMembership.id == membership_id,
            TeamMembership.invited_by_user_id == account_id,
        )
    )
    membership = result.scalar_one_or_none()
    if not membership:
        raise MembershipNotFound("Team member not found")
    return membership


async def invite_member(
    db: AsyncSession,
    gate: AuthorizationGate,
    inviter_id: str,
    email: str,
    name: Optional[str] = None,
    role=Role.MEMBER,
    inviter_email: Optional[str] = None,
) -> TeamMembership:
    """Create a PENDING membership under the inviter's account."""
    context = _ensure_allowed(await gate.authorize(inviter_id, Permission.INVITE_TEAM_MEMBERS))
    role = _membership_role(role)

    # Granting a role needs reach over it: only OWNER invites ADMINs
    if not can_manage_user(context.role, role):
        raise TeamActionDenied(Decision.deny(
            DenialReason(DenialCode.PREDICATE_FAILED, role=context.role, predicate="can_manage_user"),
            context,
        ))

    email = email.strip().lower()
    if inviter_email and email == inviter_email.strip().lower():
        raise TeamMembershipError("Cannot invite yourself as a team member")

    existing = await db.execute(
        select(TeamMembership).where(
            TeamMembership.invited_by_user_id == context.account_id,
            TeamMembership.email == email,
        )
    )
    if existing.scalar_one_or_none():
        raise MembershipConflict("Team member with this email already exists")

    user_result = await db.execute(select(User.id).where(User.email == email))
    user_row = user_result.first()
    if user_row and user_row[0] in (context.user_id, context.account_id):
        raise TeamMembershipError("Cannot invite yourself as a team member")

    membership = TeamMembership(
        email=email,
        name=name,
        role=role.value,
        status=MembershipStatus.pending.value,
        invited_by_user_id=context.account_id,
        member_user_id=user_row[0] if user_row else None,
    )
    db.add(membership)
    await db.flush()
    await db.refresh(membership)

    team_logger.info(
        "Team invitation created",
        membership_id=membership.id,
        account_id=context.account_id,
        inviter_id=inviter_id,
        role=role.value,
    )
    return membership


async def _get_pending_invitation(
    db: AsyncSession, membership_id: str, email: Optional[str]
) -> TeamMembership:
    if not email:
        raise MembershipNotFound("Team invitation not found")
    result = await db.execute(
        select(TeamMembership).where(
            TeamMembership.id == membership_id,
            TeamMembership.email == email.strip().lower(),
            TeamMembership.status == MembershipStatus.pending.value,
        )
    )
    membership = result.scalar_one_or_none()
    if not membership:
        raise MembershipNotFound("Team invitation not found")
    return membership


async def accept_invitation(
    db: AsyncSession,
    user_id: str,
    email: Optional[str],
    membership_id: str,
) -> TeamMembership:
    """Accept a PENDING invitation addressed to ``email``.

    A user belongs to at most one account, so a second acceptance is refused.
    An owner whose account has members or pending invitations is refused too.
    """
    membership = await _get_pending_invitation(db, membership_id, email)

    if membership.invited_by_user_id == user_id:
        raise TeamMembershipError("Cannot accept your own invitation")

    current = await db.execute(
        select(TeamMembership.id).where(
            TeamMembership.member_user_id == user_id,
            TeamMembership.status == MembershipStatus.accepted.value,
        )
    )
    if current.first() is not None:
        raise MembershipConflict("User already belongs to a team")

    # Accounts are one level deep, so an inviter cannot become a member
    own_team = await db.execute(
        select(TeamMembership.id).where(
            TeamMembership.invited_by_user_id == user_id,
            TeamMembership.status.in_((
                MembershipStatus.accepted.value,
                MembershipStatus.pending.value,
            )),
        )
    )
    if own_team.first() is not None:
        raise MembershipConflict("Account owners with team members cannot join another team")

    membership.status = MembershipStatus.accepted.value
    membership.member_user_id = user_id
    membership.joined_at = datetime.now(timezone.utc)
    await db.flush()

    team_logger.info(
        "Team invitation accepted",
        membership_id=membership.id,
        user_id=user_id,
        account_id=membership.invited_by_user_id,
    )
    return membership


async def decline_invitation(
    db: AsyncSession,
    user_id: str,
    email: Optional[str],
    membership_id: str,
) -> TeamMembership:
    membership = await _get_pending_invitation(db, membership_id, email)
    membership.status = MembershipStatus.declined.value
    await db.flush()
    team_logger.info("Team invitation declined", membership_id=membership.id, user_id=user_id)
    return membership


async def change_member_role(
    db: AsyncSession,
    gate: AuthorizationGate,
    changer_id: str,
    membership_id: str,
    new_role,
) -> TeamMembership:
    account_id = await gate.resolve_account_scope(changer_id)
    membership = await _get_account_membership(db, account_id, membership_id)

    new_role = coerce_role(new_role)
    if new_role is None:
        raise TeamMembershipError("Invalid role")

    # Role-change writes are applied at most once; a retry re-evaluates the decision
    _ensure_allowed(await gate.authorize_role_change(changer_id, membership.role, new_role))

    previous = membership.role
    membership.role = new_role.value
    await db.flush()

    team_logger.info(
        "Team member role changed",
        membership_id=membership.id,
        changer_id=changer_id,
        previous_role=previous,
        new_role=new_role.value,
    )
    return membership


async def remove_member(
    db: AsyncSession,
    gate: AuthorizationGate,
    remover_id: str,
    membership_id: str,
) -> None:
    context = _ensure_allowed(await gate.authorize(remover_id, Permission.REMOVE_TEAM_MEMBERS))
    membership = await _get_account_membership(db, context.account_id, membership_id)

    if membership.status == MembershipStatus.accepted.value and membership.member_user_id:
        _ensure_allowed(await gate.authorize_user_management(remover_id, membership.member_user_id))
    elif not can_manage_user(context.role, membership.role):
        raise TeamActionDenied(Decision.deny(
            DenialReason(DenialCode.PREDICATE_FAILED, role=context.role, predicate="can_manage_user"),
            context,
        ))

    await db.delete(membership)
    await db.flush()
    team_logger.info("Team member removed", membership_id=membership_id, remover_id=remover_id)


async def list_roster(
    db: AsyncSession,
    gate: AuthorizationGate,
    user_id: str,
) -> list[TeamMembership]:
    context = _ensure_allowed(await gate.authorize(user_id, Permission.VIEW_TEAM_MEMBERS))
    result = await db.execute(
        select(TeamMembership)
        .where(TeamMembership.invited_by_user_id == context.account_id)
        .order_by(TeamMembership.invited_at.desc())
    )
    return list(result.scalars().all())


async def list_assignable(
    db: AsyncSession,
    gate: AuthorizationGate,
    user_id: str,
) -> list[dict]:
    """Account owner first, then accepted members ordered by name."""
    context = _ensure_allowed(await gate.authorize(user_id, Permission.ASSIGN_TASKS))

    owner = await db.get(User, context.account_id)
    assignable = [{
        "id": context.account_id,
        "name": owner.name if owner else None,
        "email": owner.email if owner else None,
        "is_owner": True,
    }]

    result = await db.execute(
        select(TeamMembership)
        .where(
            TeamMembership.invited_by_user_id == context.account_id,
            TeamMembership.status == MembershipStatus.accepted.value,
        )
        .order_by(TeamMembership.name, TeamMembership.email)
    )
    for membership in result.scalars().all():
        assignable.append({
            "id": membership.member_user_id,
            "name": membership.name,
            "email": membership.email,
            "is_owner": False,
        })
    return assignable
