"""
Flag service: trainee feedback submission and supervisor listing.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, case
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from app import config
from app.business_logic.lifecycle import SessionLifecycleManager
from app.models.enums import (
    FeedbackCategory, FlagSeverity, FlagSource, FlagStatus, FlagType,
)
from app.models.session import Session
from app.models.session_flag import SessionFlag

# Set up logging
logger = logging.getLogger(__name__)

# Default severity per feedback category when the caller sends none
FEEDBACK_SEVERITY = {
    FeedbackCategory.AI_GUIDANCE_CONCERN: FlagSeverity.CRITICAL,
    FeedbackCategory.VOICE_TECHNICAL_ISSUE: FlagSeverity.WARNING,
    FeedbackCategory.CONTENT_ISSUE: FlagSeverity.INFO,
    FeedbackCategory.OTHER: FlagSeverity.INFO,
}


def feedback_severity(category: FeedbackCategory, requested: Optional[FlagSeverity] = None) -> FlagSeverity:
    """Severity for a feedback flag; AI guidance concerns are always critical."""
    if category == FeedbackCategory.AI_GUIDANCE_CONCERN:
        return FlagSeverity.CRITICAL
    return requested or FEEDBACK_SEVERITY[category]


class FlagService:
    def __init__(self, lifecycle: Optional[SessionLifecycleManager] = None):
        self.lifecycle = lifecycle or SessionLifecycleManager()

    async def submit_user_feedback(
        self,
        db: AsyncSession,
        session_id: str,
        category: FeedbackCategory,
        details: str,
        severity: Optional[FlagSeverity] = None,
    ) -> SessionFlag:
        await self.lifecycle.get_session(db, session_id)

        flag = SessionFlag(
            session_id=session_id,
            type=FlagType.USER_FEEDBACK,
            severity=feedback_severity(category, severity),
            source=FlagSource.USER_FEEDBACK,
            status=FlagStatus.PENDING,
            details=details,
            flag_metadata={"category": category.value},
        )
        db.add(flag)
        await db.commit()

        log = logger.warning if flag.severity == FlagSeverity.CRITICAL else logger.info
        log(f"Session flag {flag.id} created: {category.value} ({flag.severity.value}) on session {session_id}")
        return flag

    async def list_session_flags(
        self, db: AsyncSession, session_id: str, source: Optional[FlagSource] = None
    ) -> List[SessionFlag]:
        query = select(SessionFlag).where(SessionFlag.session_id == session_id)
        if source is not None:
            query = query.where(SessionFlag.source == source)
        result = await db.execute(query.order_by(SessionFlag.id))
        return list(result.scalars().all())

    async def list_flags(
        self,
        db: AsyncSession,
        status: Optional[FlagStatus] = None,
        severity: Optional[FlagSeverity] = None,
        session_id: Optional[str] = None,
        limit: int = config.FLAG_LIST_LIMIT,
    ) -> List[SessionFlag]:
        """Flags with session context, critical first, then newest first."""
        severity_rank = case(
            (SessionFlag.severity == FlagSeverity.CRITICAL, 3),
            (SessionFlag.severity == FlagSeverity.WARNING, 2),
            else_=1,
        )
        query = select(SessionFlag).options(
            selectinload(SessionFlag.session).selectinload(Session.user),
            selectinload(SessionFlag.session).selectinload(Session.scenario),
        )

        if status is not None:
            query = query.where(SessionFlag.status == status)
        if severity is not None:
            query = query.where(SessionFlag.severity == severity)
        if session_id is not None:
            query = query.where(SessionFlag.session_id == session_id)

        query = query.order_by(
            severity_rank.desc(),
            SessionFlag.created_at.desc(),
            SessionFlag.id.desc(),
        ).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())
