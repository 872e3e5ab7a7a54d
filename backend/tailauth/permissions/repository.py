from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tailauth.db.enums import MembershipStatus
from tailauth.db.models import TeamMembership, Project, ProjectAssignment, Task


@dataclass(frozen=True)
class MembershipRecord:
    membership_id: str
    member_user_id: Optional[str]
    role: str
    status: str
    invited_by_user_id: str


@dataclass(frozen=True)
class ResourceRecord:
    owner_account_id: Optional[str]
    assignees: frozenset[str] = frozenset()


class AuthorizationStore(Protocol):
    """Read-only facts the authorization engine needs from persistence."""

    async def find_accepted_membership(self, user_id: str) -> Optional[MembershipRecord]:
        ...

    async def owns_any_resource(self, user_id: str) -> bool:
        ...

    async def get_resource_owner_and_assignment(
        self, kind: str, resource_id: str
    ) -> Optional[ResourceRecord]:
        ...


def membership_record(row: TeamMembership) -> MembershipRecord:
    return MembershipRecord(
        membership_id=row.id,
        member_user_id=row.member_user_id,
        role=row.role,
        status=row.status,
        invited_by_user_id=row.invited_by_user_id,
    )


class SQLAlchemyAuthorizationStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_accepted_membership(self, user_id: str) -> Optional[MembershipRecord]:
        result = await self.db.execute(
            select(TeamMembership)
            .where(TeamMembership.member_user_id == user_id)
            .where(TeamMembership.status == MembershipStatus.accepted.value)
            .order_by(TeamMembership.joined_at)
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return membership_record(row) if row else None

    async def owns_any_resource(self, user_id: str) -> bool:
        result = await self.db.execute(
            select(Project.id).where(Project.owner_account_id == user_id).limit(1)
        )
        return result.first() is not None

    async def get_resource_owner_and_assignment(
        self, kind: str, resource_id: str
    ) -> Optional[ResourceRecord]:
        if kind == "project":
            return await self._project_record(resource_id)
        if kind == "task":
            return await self._task_record(resource_id)
        raise ValueError(f"Unknown resource kind: {kind}")

    async def _project_record(self, project_id: str) -> Optional[ResourceRecord]:
        result = await self.db.execute(
            select(Project.owner_account_id).where(Project.id == project_id)
        )
        row = result.first()
        if row is None:
            return None
        assigned = await self.db.execute(
            select(ProjectAssignment.user_id).where(ProjectAssignment.project_id == project_id)
        )
        return ResourceRecord(
            owner_account_id=row[0],
            assignees=frozenset(r[0] for r in assigned.all()),
        )

    async def _task_record(self, task_id: str) -> Optional[ResourceRecord]:
        # Task ownership is the parent project's owning account
        result = await self.db.execute(
            select(Project.owner_account_id, Task.assigned_to)
            .select_from(Task)
            .join(Project, Project.id == Task.project_id)
            .where(Task.id == task_id)
        )
        row = result.first()
        if row is None:
            return None
        owner_account_id, assigned_to = row
        return ResourceRecord(
            owner_account_id=owner_account_id,
            assignees=frozenset({assigned_to}) if assigned_to else frozenset(),
        )
