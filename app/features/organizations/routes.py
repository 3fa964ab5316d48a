"""
Department routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.organizations.membership import MembershipResolver
from app.features.organizations.schemas import MembershipResponse
from app.features.users.dependencies import Principal, get_current_principal


router = APIRouter(tags=["departments"])


@router.get("/my", response_model=list[MembershipResponse])
async def get_my_departments(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Departments the current user belongs to, with their role in each."""
    memberships = await MembershipResolver(db).memberships_of(principal.user_id)
    # Memberships are only meaningful inside the principal's tenant
    return [
        m for m in memberships
        if m.department.organization_id == principal.organization_id
    ]
