from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tailauth.permissions.dependencies import get_authorization_context
from tailauth.permissions.gate import AuthorizationContext
from tailauth.permissions.service import permission_service

router = APIRouter()


class ContextResponse(BaseModel):
    user_id: str
    role: str
    account_id: str
    permissions: List[str]


@router.get("/context", response_model=ContextResponse)
async def get_context(context: AuthorizationContext = Depends(get_authorization_context)):
    """Resolved role, account scope and permissions of the caller."""
    return {
        "user_id": context.user_id,
        "role": context.role.value,
        "account_id": context.account_id,
        "permissions": sorted(p.value for p in permission_service.permissions_for(context.role)),
    }
