from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tailauth.api.projects import TaskResponse, ensure_same_account
from tailauth.db.database import get_db
from tailauth.db.models import Project, Task
from tailauth.permissions.constants import Permission
from tailauth.permissions.dependencies import (
    ensure_permission,
    get_authorization_context,
    get_authorization_gate,
    require_task_access,
)
from tailauth.permissions.gate import AuthorizationContext, AuthorizationGate, ResourceAction
from tailauth.permissions.service import permission_service

router = APIRouter()


class AssigneeRequest(BaseModel):
    user_id: Optional[str] = None


@router.get("", response_model=List[TaskResponse])
@router.get("/", response_model=List[TaskResponse])
async def list_tasks(
    context: AuthorizationContext = Depends(get_authorization_context),
    db: AsyncSession = Depends(get_db),
):
    """Tasks of the caller's account; MEMBERs only see tasks assigned to them."""
    query = select(Task).order_by(Task.created_at)
    if permission_service.has_permission(context.role, Permission.VIEW_ALL_TASKS):
        query = query.join(Project, Project.id == Task.project_id).where(
            Project.owner_account_id == context.account_id
        )
    else:
        query = query.where(Task.assigned_to == context.user_id)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    context: AuthorizationContext = Depends(require_task_access(ResourceAction.VIEW)),
    db: AsyncSession = Depends(get_db),
):
    return await db.get(Task, task_id)


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    context: AuthorizationContext = Depends(require_task_access(ResourceAction.DELETE)),
    db: AsyncSession = Depends(get_db),
):
    task = await db.get(Task, task_id)
    await db.delete(task)
    await db.flush()
    return {"message": "Task deleted successfully"}


@router.put("/{task_id}/assignee", response_model=TaskResponse)
async def assign_task(
    task_id: str,
    request: AssigneeRequest,
    context: AuthorizationContext = Depends(require_task_access(ResourceAction.EDIT)),
    gate: AuthorizationGate = Depends(get_authorization_gate),
    db: AsyncSession = Depends(get_db),
):
    ensure_permission(context, Permission.ASSIGN_TASKS)
    if request.user_id is not None:
        await ensure_same_account(gate, context, request.user_id)

    task = await db.get(Task, task_id)
    task.assigned_to = request.user_id
    await db.flush()
    await db.refresh(task)
    return task
