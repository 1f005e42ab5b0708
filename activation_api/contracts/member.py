"""
Contracts for members and organizations.
"""

from typing import Optional
from uuid import UUID

from .base import BaseContract


class OrganizationResponse(BaseContract):
    id: UUID
    name: str


class MemberResponse(BaseContract):
    id: UUID
    name: str
    email: str
    organization_id: UUID
    default_role: str
    is_activator: bool = False


class MeResponse(BaseContract):
    id: UUID
    email: str
    member: MemberResponse
    organization: Optional[OrganizationResponse] = None
