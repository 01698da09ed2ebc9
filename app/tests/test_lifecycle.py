import asyncio
import pytest

from app.business_logic import SessionLifecycleManager, get_or_create_user
from app.errors import SessionNotFoundError, SessionNotActiveError, ScenarioNotFoundError
from app.models.enums import Modality, SessionStatus, UserRole
from app.models.user import User
from app.tests.helpers import LEARNER_ID, create_scenario


@pytest.mark.asyncio
async def test_start_session_creates_active_first_attempt(db):
    lifecycle = SessionLifecycleManager()
    session = await lifecycle.start_session(db, LEARNER_ID, modality=Modality.TEXT)

    assert session.status == SessionStatus.ACTIVE
    assert session.current_attempt == 1
    assert session.modality == Modality.TEXT
    assert session.ended_at is None

    user = await db.get(User, LEARNER_ID)
    assert user is not None
    assert user.role == UserRole.LEARNER


@pytest.mark.asyncio
async def test_start_session_with_unknown_scenario_fails(db):
    with pytest.raises(ScenarioNotFoundError):
        await SessionLifecycleManager().start_session(db, LEARNER_ID, scenario_id="missing")


@pytest.mark.asyncio
async def test_start_session_with_scenario(db):
    await create_scenario(db)
    session = await SessionLifecycleManager().start_session(db, LEARNER_ID, scenario_id="scenario-1")
    assert session.scenario_id == "scenario-1"


@pytest.mark.asyncio
async def test_get_or_create_user_keeps_existing_role(db):
    await get_or_create_user(db, "sup", role=UserRole.SUPERVISOR)
    await db.commit()

    user = await get_or_create_user(db, "sup", role=UserRole.LEARNER)
    assert user.role == UserRole.SUPERVISOR


@pytest.mark.asyncio
async def test_increment_attempt(db):
    lifecycle = SessionLifecycleManager()
    session_id = (await lifecycle.start_session(db, LEARNER_ID)).id

    assert await lifecycle.increment_attempt(db, session_id) == 2
    assert await lifecycle.increment_attempt(db, session_id) == 3

    refreshed = await lifecycle.get_session(db, session_id, refresh=True)
    assert refreshed.current_attempt == 3


@pytest.mark.asyncio
async def test_increment_attempt_on_completed_session_fails(db):
    lifecycle = SessionLifecycleManager()
    session_id = (await lifecycle.start_session(db, LEARNER_ID)).id
    await lifecycle.complete_session(db, session_id)

    with pytest.raises(SessionNotActiveError):
        await lifecycle.increment_attempt(db, session_id)

    refreshed = await lifecycle.get_session(db, session_id, refresh=True)
    assert refreshed.current_attempt == 1


@pytest.mark.asyncio
async def test_increment_attempt_on_missing_session_fails(db):
    with pytest.raises(SessionNotFoundError):
        await SessionLifecycleManager().increment_attempt(db, "missing")


@pytest.mark.asyncio
async def test_complete_session_is_idempotent(db):
    lifecycle = SessionLifecycleManager()
    session_id = (await lifecycle.start_session(db, LEARNER_ID)).id

    assert await lifecycle.complete_session(db, session_id) is True
    first = await lifecycle.get_session(db, session_id, refresh=True)
    ended_at = first.ended_at

    assert await lifecycle.complete_session(db, session_id) is False
    second = await lifecycle.get_session(db, session_id, refresh=True)
    assert second.status == SessionStatus.COMPLETED
    assert second.ended_at == ended_at


@pytest.mark.asyncio
async def test_complete_missing_session_fails(db):
    with pytest.raises(SessionNotFoundError):
        await SessionLifecycleManager().complete_session(db, "missing")


@pytest.mark.asyncio
async def test_concurrent_completion_converges(db, session_factory):
    lifecycle = SessionLifecycleManager()
    session_id = (await lifecycle.start_session(db, LEARNER_ID)).id

    async def complete():
        async with session_factory() as own_db:
            return await lifecycle.complete_session(own_db, session_id)

    results = await asyncio.gather(*(complete() for _ in range(4)))

    # Exactly one caller made the transition
    assert sorted(results) == [False, False, False, True]
    refreshed = await lifecycle.get_session(db, session_id, refresh=True)
    assert refreshed.status == SessionStatus.COMPLETED
