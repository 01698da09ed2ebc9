import asyncio
import logging
import pytest

from app.business_logic import ReconciliationGate, SessionLifecycleManager, TranscriptStore, find_gaps
from app.errors import (
    AttemptMismatchError, MalformedTranscriptError, PayloadTooLargeError, SessionNotFoundError,
    StorageUnavailableError,
)
from app.models.enums import TurnRole
from app.schemas.transcript import TurnIn
from app.tests.helpers import LEARNER_ID, FailingStore, make_turns


@pytest.fixture
def gate():
    return ReconciliationGate(TranscriptStore())


async def stored_contents(db, session_id, attempt=1):
    turns = await TranscriptStore().list_turns(db, session_id, attempt)
    return [(turn.turn_order, turn.role, turn.content) for turn in turns]


@pytest.mark.asyncio
async def test_shorter_write_leaves_storage_unchanged(db, gate):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id

    await gate.replace_turns(db, session_id, None, make_turns(5, prefix="agent"))
    before = await stored_contents(db, session_id)

    outcome = await gate.replace_turns(db, session_id, None, make_turns(3, prefix="client"))

    assert outcome.accepted is False
    assert outcome.written == 0
    assert outcome.stored_count == 5
    assert await stored_contents(db, session_id) == before


@pytest.mark.asyncio
async def test_identical_replace_is_idempotent(db, gate):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id
    turns = make_turns(4)

    first = await gate.replace_turns(db, session_id, None, turns)
    after_first = await stored_contents(db, session_id)
    second = await gate.replace_turns(db, session_id, None, turns)

    assert first.written == second.written == 4
    assert second.accepted is True
    assert await stored_contents(db, session_id) == after_first


@pytest.mark.asyncio
async def test_equal_length_write_replaces(db, gate):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id

    await gate.replace_turns(db, session_id, None, make_turns(3, prefix="first"))
    outcome = await gate.replace_turns(db, session_id, None, make_turns(3, prefix="second"))

    assert outcome.accepted is True
    contents = [content for _, _, content in await stored_contents(db, session_id)]
    assert contents == ["second 0", "second 1", "second 2"]


@pytest.mark.asyncio
async def test_round_trip_preserves_order(db, gate):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id
    turns = [
        TurnIn(role=TurnRole.ASSISTANT, content="How are you holding up?", turn_order=2),
        TurnIn(role=TurnRole.USER, content="Hi, this is the crisis line.", turn_order=0),
        TurnIn(role=TurnRole.ASSISTANT, content="I don't know who else to call.", turn_order=1),
    ]

    await gate.replace_turns(db, session_id, None, turns)

    assert await stored_contents(db, session_id) == [
        (0, TurnRole.USER, "Hi, this is the crisis line."),
        (1, TurnRole.ASSISTANT, "I don't know who else to call."),
        (2, TurnRole.ASSISTANT, "How are you holding up?"),
    ]


@pytest.mark.asyncio
async def test_too_many_turns_rejected_before_storage(db, gate):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id

    with pytest.raises(PayloadTooLargeError):
        await gate.replace_turns(db, session_id, None, make_turns(201))

    assert await TranscriptStore().count_turns(db, session_id, 1) == 0


@pytest.mark.asyncio
async def test_oversized_turn_rejected(db, gate):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id
    turns = make_turns(2)
    turns[1] = TurnIn(role=TurnRole.ASSISTANT, content="x" * 5001, turn_order=1)

    with pytest.raises(PayloadTooLargeError):
        await gate.replace_turns(db, session_id, None, turns)


@pytest.mark.asyncio
async def test_limits_are_inclusive(db, gate):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id
    turns = make_turns(200)
    turns[0] = TurnIn(role=TurnRole.USER, content="y" * 5000, turn_order=0)

    outcome = await gate.replace_turns(db, session_id, None, turns)
    assert outcome.written == 200


@pytest.mark.asyncio
async def test_duplicate_turn_order_is_malformed(db, gate):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id
    turns = make_turns(2) + [TurnIn(role=TurnRole.USER, content="again", turn_order=1)]

    with pytest.raises(MalformedTranscriptError):
        await gate.replace_turns(db, session_id, None, turns)


@pytest.mark.asyncio
async def test_empty_payload_is_malformed(db, gate):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id

    with pytest.raises(MalformedTranscriptError):
        await gate.replace_turns(db, session_id, None, [])


@pytest.mark.asyncio
async def test_missing_session(db, gate):
    with pytest.raises(SessionNotFoundError):
        await gate.replace_turns(db, "missing", None, make_turns(2))


@pytest.mark.asyncio
async def test_attempts_are_stored_separately(db, gate):
    lifecycle = SessionLifecycleManager()
    session_id = (await lifecycle.start_session(db, LEARNER_ID)).id
    await gate.replace_turns(db, session_id, None, make_turns(6, prefix="first try"))

    await lifecycle.increment_attempt(db, session_id)
    outcome = await gate.replace_turns(db, session_id, None, make_turns(2, prefix="second try"))

    # A fresh attempt starts empty, so the short write is accepted
    assert outcome.accepted is True
    assert outcome.attempt_number == 2
    assert len(await stored_contents(db, session_id, attempt=1)) == 6
    assert len(await stored_contents(db, session_id, attempt=2)) == 2


@pytest.mark.asyncio
async def test_earlier_attempt_can_be_targeted(db, gate):
    lifecycle = SessionLifecycleManager()
    session_id = (await lifecycle.start_session(db, LEARNER_ID)).id
    await lifecycle.increment_attempt(db, session_id)

    outcome = await gate.replace_turns(db, session_id, 1, make_turns(3))
    assert outcome.attempt_number == 1
    assert len(await stored_contents(db, session_id, attempt=1)) == 3


@pytest.mark.asyncio
async def test_future_attempt_is_rejected(db, gate):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id

    with pytest.raises(AttemptMismatchError):
        await gate.replace_turns(db, session_id, 2, make_turns(3))


@pytest.mark.asyncio
async def test_late_longer_flush_lands_on_completed_session(db, gate):
    lifecycle = SessionLifecycleManager()
    session_id = (await lifecycle.start_session(db, LEARNER_ID)).id
    await gate.replace_turns(db, session_id, None, make_turns(3))
    await lifecycle.complete_session(db, session_id)

    outcome = await gate.replace_turns(db, session_id, None, make_turns(5))
    assert outcome.accepted is True
    assert outcome.stored_count == 5


@pytest.mark.asyncio
async def test_gaps_are_reported_and_logged(db, gate, caplog):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id
    turns = [turn for turn in make_turns(6) if turn.turn_order not in (2, 3)]

    with caplog.at_level(logging.WARNING, logger="app.business_logic.reconciliation"):
        outcome = await gate.replace_turns(db, session_id, None, turns)

    assert outcome.accepted is True
    assert outcome.gaps == [2, 3]
    assert "missing turn positions [2, 3]" in caplog.text


@pytest.mark.asyncio
async def test_concurrent_writers_longer_wins(db, session_factory, gate):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id

    async def write(count, prefix):
        async with session_factory() as own_db:
            return await gate.replace_turns(own_db, session_id, None, make_turns(count, prefix=prefix))

    await asyncio.gather(write(5, "agent"), write(3, "client"))

    contents = await stored_contents(db, session_id)
    assert len(contents) == 5
    assert all(content.startswith("agent") for _, _, content in contents)


def test_find_gaps():
    assert find_gaps([]) == ([], 0)
    assert find_gaps([0, 1, 2]) == ([], 0)
    assert find_gaps([0, 3]) == ([1, 2], 2)
    assert find_gaps([2, 1]) == ([0], 1)
    assert find_gaps([0, 2, 5], limit=2) == ([1, 3], 3)


def test_find_gaps_walks_payload_not_position_range():
    gaps, total = find_gaps([0, 2_000_000_000], limit=5)
    assert gaps == [1, 2, 3, 4, 5]
    assert total == 1_999_999_999


@pytest.mark.asyncio
async def test_reported_gaps_are_capped(db):
    gate = ReconciliationGate(TranscriptStore(), max_reported_gaps=3)
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id
    turns = [
        TurnIn(role=TurnRole.USER, content="hello", turn_order=0),
        TurnIn(role=TurnRole.ASSISTANT, content="hi", turn_order=1500),
    ]

    outcome = await gate.replace_turns(db, session_id, None, turns)

    assert outcome.accepted is True
    assert outcome.gaps == [1, 2, 3]
    assert outcome.gap_count == 1499


@pytest.mark.asyncio
async def test_storage_failure_keeps_previous_turns(db, gate):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id
    await gate.replace_turns(db, session_id, None, make_turns(3, prefix="before"))
    before = await stored_contents(db, session_id)

    failing_gate = ReconciliationGate(FailingStore())
    with pytest.raises(StorageUnavailableError) as exc_info:
        await failing_gate.replace_turns(db, session_id, None, make_turns(5, prefix="after"))

    assert exc_info.value.retryable is True
    assert exc_info.value.status_code == 503
    assert await stored_contents(db, session_id) == before
