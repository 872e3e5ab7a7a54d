from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from tailauth.db.database import get_db
from tailauth.db.models import Project, ProjectAssignment, Task
from tailauth.permissions.constants import Permission
from tailauth.permissions.dependencies import (
    ensure_permission,
    get_authorization_context,
    get_authorization_gate,
    require_permission,
    require_project_access,
)
from tailauth.permissions.gate import AuthorizationContext, AuthorizationGate, ResourceAction
from tailauth.permissions.service import permission_service

router = APIRouter()


class ProjectCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class ProjectUpdateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class ProjectResponse(BaseModel):
    id: str
    name: str
    owner_account_id: str

    class Config:
        from_attributes = True


class ProjectAssignmentRequest(BaseModel):
    user_id: str = Field(min_length=1)


class ProjectAssignmentResponse(BaseModel):
    project_id: str
    user_id: str

    class Config:
        from_attributes = True


class TaskCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)


class TaskResponse(BaseModel):
    id: str
    project_id: str
    title: str
    assigned_to: Optional[str] = None

    class Config:
        from_attributes = True


async def ensure_same_account(gate: AuthorizationGate, context: AuthorizationContext, user_id: str) -> None:
    """Reject assignees that belong to a different account than the caller."""
    if await gate.resolve_account_scope(user_id) != context.account_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Assignee is not part of this account",
        )


@router.get("", response_model=List[ProjectResponse])
@router.get("/", response_model=List[ProjectResponse])
async def list_projects(
    context: AuthorizationContext = Depends(get_authorization_context),
    db: AsyncSession = Depends(get_db),
):
    query = select(Project).order_by(Project.created_at)
    if permission_service.has_permission(context.role, Permission.VIEW_ALL_PROJECTS):
        query = query.where(Project.owner_account_id == context.account_id)
    else:
        assigned = select(ProjectAssignment.project_id).where(ProjectAssignment.user_id == context.user_id)
        query = query.where(or_(
            Project.owner_account_id == context.user_id,
            Project.id.in_(assigned),
        ))
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: ProjectCreateRequest,
    context: AuthorizationContext = Depends(require_permission(Permission.CREATE_PROJECTS)),
    db: AsyncSession = Depends(get_db),
):
    # Projects created by team members belong to the account they work in
    project = Project(name=request.name, owner_account_id=context.account_id)
    db.add(project)
    await db.flush()
    await db.refresh(project)
    return project


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    context: AuthorizationContext = Depends(require_project_access(ResourceAction.VIEW)),
    db: AsyncSession = Depends(get_db),
):
    return await db.get(Project, project_id)


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    request: ProjectUpdateRequest,
    context: AuthorizationContext = Depends(require_project_access(ResourceAction.EDIT)),
    db: AsyncSession = Depends(get_db),
):
    project = await db.get(Project, project_id)
    project.name = request.name
    await db.flush()
    await db.refresh(project)
    return project


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    context: AuthorizationContext = Depends(require_project_access(ResourceAction.DELETE)),
    db: AsyncSession = Depends(get_db),
):
    project = await db.get(Project, project_id)
    await db.delete(project)
    await db.flush()
    return {"message": "Project deleted successfully"}


@router.post(
    "/{project_id}/assignments",
    response_model=ProjectAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_project(
    project_id: str,
    request: ProjectAssignmentRequest,
    context: AuthorizationContext = Depends(require_project_access(ResourceAction.EDIT)),
    gate: AuthorizationGate = Depends(get_authorization_gate),
    db: AsyncSession = Depends(get_db),
):
    ensure_permission(context, Permission.ASSIGN_TASKS)
    await ensure_same_account(gate, context, request.user_id)

    existing = await db.execute(
        select(ProjectAssignment).where(
            ProjectAssignment.project_id == project_id,
            ProjectAssignment.user_id == request.user_id,
        )
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already assigned to this project",
        )

    assignment = ProjectAssignment(project_id=project_id, user_id=request.user_id)
    db.add(assignment)
    await db.flush()
    return assignment


@router.delete("/{project_id}/assignments/{user_id}")
async def unassign_project(
    project_id: str,
    user_id: str,
    context: AuthorizationContext = Depends(require_project_access(ResourceAction.EDIT)),
    db: AsyncSession = Depends(get_db),
):
    ensure_permission(context, Permission.ASSIGN_TASKS)

    result = await db.execute(
        select(ProjectAssignment).where(
            ProjectAssignment.project_id == project_id,
            ProjectAssignment.user_id == user_id,
        )
    )
    assignment = result.scalar_one_or_none()
    if not assignment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")

    await db.delete(assignment)
    await db.flush()
    return {"message": "Assignment removed"}


@router.post("/{project_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    project_id: str,
    request: TaskCreateRequest,
    context: AuthorizationContext = Depends(require_project_access(ResourceAction.EDIT)),
    db: AsyncSession = Depends(get_db),
):
    ensure_permission(context, Permission.CREATE_TASKS)
    task = Task(project_id=project_id, title=request.title)
    db.add(task)
    await db.flush()
    await db.refresh(task)
    return task
