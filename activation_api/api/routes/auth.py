"""
Authentication routes
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.contracts.member import MemberResponse, MeResponse, OrganizationResponse
from activation_api.dependencies.auth import get_current_member
from activation_api.dependencies.db import get_db
from activation_api.models.members import Member
from activation_api.models.organizations import Organization

router = APIRouter()


@router.get("/me", response_model=MeResponse)
async def get_me(
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    """
    Return the current member and their organization.
    """
    organization = await db.get(Organization, member.organization_id)
    return MeResponse(
        id=member.id,
        email=member.email,
        member=MemberResponse.model_validate(member),
        organization=OrganizationResponse.model_validate(organization) if organization else None,
    )
