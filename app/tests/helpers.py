"""
Shared test data builders.
"""

import os

from sqlalchemy import delete
from sqlalchemy.exc import OperationalError

from app.business_logic import TranscriptStore
from app.models.enums import TurnRole
from app.models.scenario import Scenario
from app.models.transcript_turn import TranscriptTurn
from app.schemas.transcript import TurnIn

SERVICE_KEY = os.environ.get("INTERNAL_SERVICE_KEY", "test-service-key")

LEARNER_ID = "learner-1"
OTHER_LEARNER_ID = "learner-2"
SUPERVISOR_ID = "supervisor-1"

LEARNER_HEADERS = {"X-User-Id": LEARNER_ID, "X-User-Role": "learner"}
OTHER_LEARNER_HEADERS = {"X-User-Id": OTHER_LEARNER_ID, "X-User-Role": "learner"}
SUPERVISOR_HEADERS = {"X-User-Id": SUPERVISOR_ID, "X-User-Role": "supervisor"}
INTERNAL_HEADERS = {"X-Internal-Service-Key": SERVICE_KEY}


def make_turns(count, start=0, prefix="line"):
    """Alternating counselor/caller turns with orders ``start .. start+count-1``."""
    return [
        TurnIn(
            role=TurnRole.USER if order % 2 == 0 else TurnRole.ASSISTANT,
            content=f"{prefix} {order}",
            turn_order=order,
        )
        for order in range(start, start + count)
    ]


def turns_payload(count, start=0, prefix="line", attempt_number=None):
    """Request body for the transcript endpoint."""
    payload = {
        "turns": [turn.model_dump(by_alias=True, mode="json") for turn in make_turns(count, start, prefix)],
    }
    if attempt_number is not None:
        payload["attemptNumber"] = attempt_number
    return payload


async def create_scenario(db, scenario_id="scenario-1", prompt="You are Sam, a caller in crisis."):
    scenario = Scenario(
        id=scenario_id,
        title="Caller in crisis",
        description="A caller reaches out after losing their job.",
        prompt=prompt,
        evaluator_context="Counselor should assess safety before problem solving.",
    )
    db.add(scenario)
    await db.commit()
    return scenario


async def start_session(client, headers=LEARNER_HEADERS, **body):
    response = await client.post("/api/v1/sessions", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def write_turns(client, session_id, count, headers=INTERNAL_HEADERS, **kwargs):
    return await client.post(
        f"/api/v1/sessions/{session_id}/transcript",
        json=turns_payload(count, **kwargs),
        headers=headers,
    )


class FailingStore(TranscriptStore):
    """Deletes the attempt's turns, then fails before inserting."""

    async def replace_all(self, db, session_id, attempt_number, turns):
        await db.execute(
            delete(TranscriptTurn).where(
                TranscriptTurn.session_id == session_id,
                TranscriptTurn.attempt_number == attempt_number,
            )
        )
        raise OperationalError("INSERT INTO transcript_turns", {}, Exception("disk I/O error"))
