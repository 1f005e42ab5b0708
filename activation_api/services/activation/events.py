"""
Audit log writer for activation events.

Events are telemetry: a failed insert is logged and never undoes the
primary write that triggered it.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.models.activation_events import ActivationEvent
from activation_api.models.members import Member

logger = logging.getLogger(__name__)


async def record_event(
    db: AsyncSession,
    trial_pipeline_id: UUID,
    event_type: str,
    actor_user_id: Optional[UUID],
    metadata: Optional[Dict[str, Any]] = None,
    reload: Sequence[Any] = (),
) -> Optional[ActivationEvent]:
    """
    Append an activation event in its own commit.

    A failed insert rolls the session back, which expires every loaded
    row; objects passed in ``reload`` are refreshed so the caller can keep
    reading them.

    Returns the event, or None if the insert failed.
    """
    event = ActivationEvent(
        trial_pipeline_id=trial_pipeline_id,
        event_type=event_type,
        actor_user_id=actor_user_id,
        event_metadata=metadata or {},
    )
    try:
        db.add(event)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            "Failed to log activation event %s for pipeline %s: %s",
            event_type, trial_pipeline_id, e,
        )
        for obj in reload:
            await db.refresh(obj)
        return None
    return event


async def list_events(db: AsyncSession, trial_pipeline_id: UUID) -> List[tuple]:
    """Events for a pipeline, newest first, joined with the acting member."""
    result = await db.execute(
        select(ActivationEvent, Member)
        .outerjoin(Member, ActivationEvent.actor_user_id == Member.id)
        .where(ActivationEvent.trial_pipeline_id == trial_pipeline_id)
        .order_by(ActivationEvent.created_at.desc())
    )
    return list(result.all())
