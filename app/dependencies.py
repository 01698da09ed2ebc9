"""
Dependencies for the Hotline Training Server.

This module provides FastAPI dependencies: caller identity, access checks,
and the pipeline components wired to the shared inference client and
session factory. Tests replace any of them through
``app.dependency_overrides``.
"""

import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app import config
from app.business_logic import (
    AnalysisRunner, AnalysisScanner, EvaluationOrchestrator,
    FlagService, ReconciliationGate, SessionLifecycleManager,
    TranscriptStore, get_or_create_user,
)
from app.database.init_db import async_session, get_session
from app.errors import AccessDeniedError, AuthenticationRequiredError
from app.inference import InferenceClient
from app.models.enums import UserRole
from app.models.session import Session

INTERNAL_PRINCIPAL_ID = "internal-service"

_inference_client: Optional[InferenceClient] = None


@dataclass
class Principal:
    """The caller of a request.

    Stand-in for the product's real authentication: end users identify
    with ``X-User-Id`` / ``X-User-Role`` headers, server-side callers with
    ``X-Internal-Service-Key``.
    """
    user_id: str
    role: Optional[UserRole] = None
    internal: bool = False

    @property
    def is_supervisor(self) -> bool:
        return self.role == UserRole.SUPERVISOR

    def can_access(self, session: Session) -> bool:
        return self.internal or self.is_supervisor or session.user_id == self.user_id


async def get_principal(
    x_internal_service_key: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_session),
) -> Principal:
    """Resolve the caller, provisioning end users on first sight.

    The stored role wins over the header. New users become supervisors only
    when listed in ``SUPERVISOR_USER_IDS``.
    """
    if x_internal_service_key is not None:
        if config.INTERNAL_SERVICE_KEY and hmac.compare_digest(
            x_internal_service_key, config.INTERNAL_SERVICE_KEY
        ):
            return Principal(user_id=INTERNAL_PRINCIPAL_ID, internal=True)
        raise AuthenticationRequiredError("Invalid internal service key")

    if not x_user_id:
        raise AuthenticationRequiredError()

    try:
        requested_role = UserRole(x_user_role) if x_user_role else UserRole.LEARNER
    except ValueError:
        raise AuthenticationRequiredError(f"Unknown role {x_user_role!r}")

    role = UserRole.SUPERVISOR if x_user_id in config.SUPERVISOR_USER_IDS else UserRole.LEARNER
    user = await get_or_create_user(db, x_user_id, role=role)
    if requested_role == UserRole.SUPERVISOR and user.role != UserRole.SUPERVISOR:
        raise AccessDeniedError("Supervisor role is not granted to this user")
    await db.commit()
    return Principal(user_id=user.id, role=user.role)


async def require_supervisor(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_supervisor:
        raise AccessDeniedError("Supervisor access required")
    return principal


def get_inference_client() -> InferenceClient:
    """Process-wide inference client, created on first use."""
    global _inference_client
    if _inference_client is None:
        _inference_client = InferenceClient()
    return _inference_client


async def close_inference_client() -> None:
    global _inference_client
    if _inference_client is not None:
        await _inference_client.aclose()
        _inference_client = None


def get_lifecycle_manager() -> SessionLifecycleManager:
    return SessionLifecycleManager()


def get_reconciliation_gate() -> ReconciliationGate:
    return ReconciliationGate(TranscriptStore())


def get_flag_service() -> FlagService:
    return FlagService()


def get_evaluation_orchestrator(
    inference: InferenceClient = Depends(get_inference_client),
) -> EvaluationOrchestrator:
    return EvaluationOrchestrator(inference)


def get_analysis_scanner(
    inference: InferenceClient = Depends(get_inference_client),
) -> AnalysisScanner:
    return AnalysisScanner(inference)


def get_analysis_runner(
    scanner: AnalysisScanner = Depends(get_analysis_scanner),
) -> AnalysisRunner:
    return AnalysisRunner(scanner, async_session)
