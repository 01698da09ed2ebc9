"""
Session lifecycle manager.

The only component allowed to change a session's ``status`` or
``current_attempt``. Every transition is a single conditional UPDATE, so
concurrent callers converge without read-then-write races:

    active --complete--> completed   (terminal, idempotent)
    active --restart-->  active      (current_attempt + 1)
"""

import datetime
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import SessionNotFoundError, SessionNotActiveError, ScenarioNotFoundError
from app.models.enums import Modality, SessionStatus, UserRole
from app.models.scenario import Scenario
from app.models.session import Session
from app.models.user import User

# Set up logging
logger = logging.getLogger(__name__)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


async def get_or_create_user(
    db: AsyncSession,
    user_id: str,
    role: UserRole = UserRole.LEARNER,
    display_name: Optional[str] = None,
) -> User:
    """Get an existing user or provision one on first sight.

    Does not commit; the caller's transaction owns the insert.
    """
    user = await db.get(User, user_id)
    if user is not None:
        return user

    user = User(id=user_id, role=role, display_name=display_name)
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Provisioned concurrently by another request
        await db.rollback()
        user = await db.get(User, user_id)
        if user is None:
            raise
        return user
    logger.info(f"Provisioned user {user_id} with role {role.value}")
    return user


class SessionLifecycleManager:
    """Owns the session/attempt state machine."""

    async def get_session(self, db: AsyncSession, session_id: str, refresh: bool = False) -> Session:
        query = select(Session).where(Session.id == session_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await db.execute(query)
        session = result.scalars().first()
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    async def start_session(
        self,
        db: AsyncSession,
        user_id: str,
        scenario_id: Optional[str] = None,
        modality: Modality = Modality.VOICE,
    ) -> Session:
        """Create a session in ``active`` status at attempt 1."""
        await get_or_create_user(db, user_id)

        if scenario_id is not None and await db.get(Scenario, scenario_id) is None:
            raise ScenarioNotFoundError(f"Scenario {scenario_id} not found")

        session = Session(
            user_id=user_id,
            scenario_id=scenario_id,
            modality=modality,
            status=SessionStatus.ACTIVE,
            current_attempt=1,
        )
        db.add(session)
        await db.commit()
        logger.info(f"Started {modality.value} session {session.id} for user {user_id}")
        return session

    async def increment_attempt(self, db: AsyncSession, session_id: str) -> int:
        """Atomically bump ``current_attempt`` on an active session and return it."""
        result = await db.execute(
            update(Session)
            .where(Session.id == session_id, Session.status == SessionStatus.ACTIVE)
            .values(current_attempt=Session.current_attempt + 1)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            await db.rollback()
            # Distinguish "missing" from "already completed"
            await self.get_session(db, session_id)
            raise SessionNotActiveError(f"Session {session_id} is completed; start a new session instead")

        attempt_result = await db.execute(
            select(Session.current_attempt).where(Session.id == session_id)
        )
        attempt = attempt_result.scalar_one()
        await db.commit()
        logger.info(f"Session {session_id} restarted at attempt {attempt}")
        return attempt

    async def complete_session(self, db: AsyncSession, session_id: str, commit: bool = True) -> bool:
        """Flip an active session to ``completed``.

        Idempotent: completing a completed session is a no-op. Returns True
        only for the caller whose update made the transition. With
        ``commit=False`` the update joins the caller's transaction.
        """
        result = await db.execute(
            update(Session)
            .where(Session.id == session_id, Session.status == SessionStatus.ACTIVE)
            .values(status=SessionStatus.COMPLETED, ended_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        transitioned = result.rowcount == 1

        if not transitioned:
            exists = await db.execute(select(Session.id).where(Session.id == session_id))
            if exists.scalar_one_or_none() is None:
                if commit:
                    await db.rollback()
                raise SessionNotFoundError(f"Session {session_id} not found")
            logger.debug(f"Session {session_id} already completed")

        if commit:
            await db.commit()

        if transitioned:
            logger.info(f"Session {session_id} completed")
        return transitioned
