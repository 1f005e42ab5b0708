"""
Manual kills and the first-lead activation signal.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.models.enums import ActivationStatus, KillReason, PipelineEvent
from activation_api.models.leads import Lead
from activation_api.models.members import Member
from activation_api.models.trial_pipeline import TrialPipeline
from activation_api.services.utils.dates import ensure_utc, utcnow

from .errors import ActivationError, NotFound, PipelineUpdateFailed, ValidationFailed
from .events import record_event
from .pipeline import apply_transition, get_active_pipeline_for_lead, mark_killed
from .state_machine import is_terminal

logger = logging.getLogger(__name__)

RECYCLE_BADGE = "recycle_not_interested"
CONTACT_KILL_NOTE = "Killed by admin via contact lookup"


def normalize_phone(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


@dataclass
class ContactKillReport:
    killed: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    # Pipelines the caller should sync downstream
    pipeline_ids: List[UUID] = field(default_factory=list)


class KillService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def _kill(
        self,
        pipeline: TrialPipeline,
        lead: Optional[Lead],
        kill_reason: str,
        lost_reason: Optional[str],
    ) -> None:
        mark_killed(pipeline, kill_reason, lost_reason, now=utcnow())
        if lead is not None:
            lead.badge_key = RECYCLE_BADGE

    async def kill_lead(
        self,
        lead_id: UUID,
        actor: Member,
        reason: Optional[str] = None,
        kill_reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TrialPipeline:
        """Kill the open trial of a lead and recycle the lead."""
        if kill_reason and kill_reason not in {r.value for r in KillReason}:
            raise ValidationFailed(f"Invalid kill_reason: {kill_reason}")

        try:
            pipeline = await get_active_pipeline_for_lead(self.db, lead_id, actor.organization_id)
            if not pipeline:
                raise NotFound("No open trial found for this lead")
            lead = await self.db.get(Lead, lead_id)
            self._kill(
                pipeline,
                lead,
                kill_reason or KillReason.other.value,
                notes or reason or "No reason provided",
            )
            await self.db.commit()
        except ActivationError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to kill trial for lead %s: %s", lead_id, e)
            raise PipelineUpdateFailed("Failed to kill trial")

        logger.info("Trial %s killed by %s (%s)", pipeline.id, actor.id, pipeline.activation_kill_reason)
        await record_event(
            self.db,
            pipeline.id,
            "killed",
            actor.id,
            {"kill_reason": pipeline.activation_kill_reason, "reason": reason, "notes": notes},
            reload=(pipeline,),
        )
        return pipeline

    async def kill_by_contact(
        self,
        actor: Member,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> ContactKillReport:
        """
        Kill every open trial whose lead matches the phone digits or the email.

        Each lead is committed on its own; one failing lead is reported in
        ``errors`` without undoing the others.
        """
        if not phone and not email:
            raise ValidationFailed("phone or email is required")

        conditions = []
        digits = normalize_phone(phone) if phone else ""
        if digits:
            conditions.append(Lead.phone.is_not(None))
        if email:
            conditions.append(func.lower(Lead.email) == email.strip().lower())
        if not conditions:
            raise ValidationFailed("phone or email is required")

        result = await self.db.execute(
            select(Lead).where(Lead.organization_id == actor.organization_id, or_(*conditions))
        )
        leads = [
            lead for lead in result.scalars().all()
            if (email and (lead.email or "").lower() == email.strip().lower())
            or (digits and digits in normalize_phone(lead.phone))
        ]

        report = ContactKillReport()
        for lead_id in [lead.id for lead in leads]:
            try:
                lead = await self.db.get(Lead, lead_id)
                pipeline = await get_active_pipeline_for_lead(self.db, lead_id, actor.organization_id)
                if not pipeline:
                    continue
                self._kill(pipeline, lead, KillReason.other.value, CONTACT_KILL_NOTE)
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error("Failed to kill trial for lead %s: %s", lead_id, e)
                report.errors.append({"leadId": str(lead_id), "error": str(e)})
                continue

            await record_event(
                self.db, pipeline.id, "killed", actor.id,
                {"kill_reason": KillReason.other.value, "notes": CONTACT_KILL_NOTE},
                reload=(pipeline, lead),
            )
            report.pipeline_ids.append(pipeline.id)
            report.killed.append({
                "leadId": str(lead.id),
                "name": lead.name,
                "phone": lead.phone,
                "email": lead.email,
                "jccUserId": pipeline.jcc_user_id,
            })

        logger.info("Contact lookup by %s killed %d trial(s)", actor.id, len(report.killed))
        return report

    async def record_first_lead(self, jcc_user_id: str, first_lead_at: Optional[datetime] = None) -> TrialPipeline:
        """
        Mark the trial of a Control Tower account as activated.

        Repeated signals for an already activated trial are a no-op.
        """
        result = await self.db.execute(
            select(TrialPipeline)
            .where(TrialPipeline.jcc_user_id == jcc_user_id)
            .order_by(TrialPipeline.created_at.desc())
        )
        pipelines = list(result.scalars().all())
        if not pipelines:
            raise NotFound("No trial found for this user")

        activated = next(
            (p for p in pipelines if p.activation_status == ActivationStatus.activated.value), None
        )
        if activated:
            return activated

        pipeline = next((p for p in pipelines if not is_terminal(p.activation_status)), pipelines[0])
        received_at = ensure_utc(first_lead_at) or utcnow()
        try:
            apply_transition(pipeline, PipelineEvent.first_lead_received, received_at)
            pipeline.first_lead_received_at = received_at
            await self.db.commit()
        except ActivationError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to record first lead for %s: %s", jcc_user_id, e)
            raise PipelineUpdateFailed("Failed to record first lead")

        logger.info("Trial %s activated by first lead", pipeline.id)
        await record_event(
            self.db, pipeline.id, "first_lead_received", None,
            {"first_lead_at": received_at.isoformat()},
            reload=(pipeline,),
        )
        return pipeline
