"""
Generic async lookup helpers scoped to an organization.
"""

from typing import Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """
    Reusable async reads for any model carrying ``organization_id``.

    Usage::

        leads = CRUDBase(Lead, db)
        lead = await leads.get_in_org(lead_id, member.organization_id)
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession) -> None:
        self.model = model
        self.db = db

    async def get(self, id: UUID, for_update: bool = False) -> Optional[ModelType]:
        stmt = select(self.model).where(self.model.id == id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_in_org(
        self,
        id: UUID,
        organization_id: UUID,
        for_update: bool = False,
    ) -> Optional[ModelType]:
        """Fetch a row only if it belongs to the caller's organization."""
        stmt = select(self.model).where(
            self.model.id == id,
            self.model.organization_id == organization_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalars().first()

