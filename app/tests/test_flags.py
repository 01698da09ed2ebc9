import pytest

from app.business_logic import FlagService, SessionLifecycleManager, get_or_create_user
from app.business_logic.flags import feedback_severity
from app.errors import SessionNotFoundError
from app.models.enums import FeedbackCategory, FlagSeverity, FlagSource, FlagStatus, FlagType, UserRole
from app.models.session_flag import SessionFlag
from app.tests.helpers import (
    LEARNER_HEADERS, OTHER_LEARNER_HEADERS, SUPERVISOR_HEADERS, LEARNER_ID,
    create_scenario, start_session,
)


def test_ai_guidance_concern_is_always_critical():
    assert feedback_severity(FeedbackCategory.AI_GUIDANCE_CONCERN) == FlagSeverity.CRITICAL
    assert feedback_severity(FeedbackCategory.AI_GUIDANCE_CONCERN, FlagSeverity.INFO) == FlagSeverity.CRITICAL


def test_feedback_severity_defaults():
    assert feedback_severity(FeedbackCategory.VOICE_TECHNICAL_ISSUE) == FlagSeverity.WARNING
    assert feedback_severity(FeedbackCategory.CONTENT_ISSUE) == FlagSeverity.INFO
    assert feedback_severity(FeedbackCategory.OTHER) == FlagSeverity.INFO
    assert feedback_severity(FeedbackCategory.OTHER, FlagSeverity.WARNING) == FlagSeverity.WARNING


@pytest.mark.asyncio
async def test_submit_user_feedback(db):
    session_id = (await SessionLifecycleManager().start_session(db, LEARNER_ID)).id

    flag = await FlagService().submit_user_feedback(
        db, session_id, FeedbackCategory.AI_GUIDANCE_CONCERN, "The caller told me to skip the safety check"
    )

    assert flag.type == FlagType.USER_FEEDBACK
    assert flag.source == FlagSource.USER_FEEDBACK
    assert flag.status == FlagStatus.PENDING
    assert flag.severity == FlagSeverity.CRITICAL
    assert flag.flag_metadata == {"category": "ai-guidance-concern"}


@pytest.mark.asyncio
async def test_submit_feedback_for_missing_session(db):
    with pytest.raises(SessionNotFoundError):
        await FlagService().submit_user_feedback(db, "missing", FeedbackCategory.OTHER, "hello")


@pytest.mark.asyncio
async def test_list_flags_orders_critical_first_then_newest(db):
    lifecycle = SessionLifecycleManager()
    first_id = (await lifecycle.start_session(db, LEARNER_ID)).id
    second_id = (await lifecycle.start_session(db, LEARNER_ID)).id

    for session_id, severity, details in [
        (first_id, FlagSeverity.INFO, "old info"),
        (first_id, FlagSeverity.CRITICAL, "old critical"),
        (second_id, FlagSeverity.WARNING, "warning"),
        (second_id, FlagSeverity.CRITICAL, "new critical"),
        (second_id, FlagSeverity.INFO, "new info"),
    ]:
        db.add(SessionFlag(
            session_id=session_id,
            type=FlagType.OFF_TOPIC,
            severity=severity,
            source=FlagSource.ANALYSIS,
            details=details,
        ))
        await db.commit()

    service = FlagService()
    flags = await service.list_flags(db)
    assert [flag.details for flag in flags] == [
        "new critical", "old critical", "warning", "new info", "old info",
    ]

    only_second = await service.list_flags(db, session_id=second_id)
    assert len(only_second) == 3

    critical = await service.list_flags(db, severity=FlagSeverity.CRITICAL)
    assert {flag.details for flag in critical} == {"new critical", "old critical"}

    limited = await service.list_flags(db, limit=2)
    assert len(limited) == 2


# HTTP

@pytest.mark.asyncio
async def test_feedback_endpoint(client):
    session = await start_session(client)

    response = await client.post(
        f"/api/v1/sessions/{session['id']}/flag",
        json={"type": "voice-technical-issue", "details": "Audio kept cutting out"},
        headers=LEARNER_HEADERS,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["type"] == "user-feedback"
    assert body["source"] == "user-feedback"
    assert body["severity"] == "warning"
    assert body["status"] == "pending"
    assert body["metadata"] == {"category": "voice-technical-issue"}
    assert body["sessionId"] == session["id"]


@pytest.mark.asyncio
async def test_feedback_rejects_unknown_category(client):
    session = await start_session(client)

    response = await client.post(
        f"/api/v1/sessions/{session['id']}/flag",
        json={"type": "complaint", "details": "no"},
        headers=LEARNER_HEADERS,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_feedback_on_other_users_session_is_forbidden(client):
    session = await start_session(client)

    response = await client.post(
        f"/api/v1/sessions/{session['id']}/flag",
        json={"type": "other", "details": "not mine"},
        headers=OTHER_LEARNER_HEADERS,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_flags_requires_supervisor(client):
    response = await client.get("/api/v1/flags", headers=LEARNER_HEADERS)
    assert response.status_code == 403
    assert response.json()["code"] == "access_denied"


@pytest.mark.asyncio
async def test_unlisted_user_cannot_claim_supervisor(client):
    headers = {"X-User-Id": "self-promoted", "X-User-Role": "supervisor"}

    first = await client.get("/api/v1/flags", headers=headers)
    second = await client.get("/api/v1/flags", headers=headers)

    assert first.status_code == 403
    assert first.json()["code"] == "access_denied"
    assert second.status_code == 403


@pytest.mark.asyncio
async def test_provisioned_supervisor_is_honoured(client, db):
    await get_or_create_user(db, "sup-2", role=UserRole.SUPERVISOR)
    await db.commit()

    response = await client.get("/api/v1/flags", headers={"X-User-Id": "sup-2", "X-User-Role": "supervisor"})

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_list_flags_with_session_context(client, db):
    await create_scenario(db)
    session = await start_session(client, scenarioId="scenario-1", modality="text")
    await client.post(
        f"/api/v1/sessions/{session['id']}/flag",
        json={"type": "ai-guidance-concern", "details": "Unsafe advice from the caller"},
        headers=LEARNER_HEADERS,
    )
    await client.post(
        f"/api/v1/sessions/{session['id']}/flag",
        json={"type": "content-issue", "details": "Typo in scenario"},
        headers=LEARNER_HEADERS,
    )

    response = await client.get("/api/v1/flags", headers=SUPERVISOR_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    first = body["results"][0]
    assert first["severity"] == "critical"
    assert first["session"]["id"] == session["id"]
    assert first["session"]["modality"] == "text"
    assert first["session"]["userId"] == LEARNER_HEADERS["X-User-Id"]
    assert first["session"]["scenarioTitle"] == "Caller in crisis"

    filtered = await client.get(
        "/api/v1/flags",
        params={"severity": "info", "sessionId": session["id"]},
        headers=SUPERVISOR_HEADERS,
    )
    assert [item["details"] for item in filtered.json()["results"]] == ["Typo in scenario"]
