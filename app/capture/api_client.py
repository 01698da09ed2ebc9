"""
HTTP client the capture writers flush through.
"""

import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from app import config
from app.capture.events import TurnEvent
from app.models.enums import UserRole

# Set up logging
logger = logging.getLogger(__name__)


class PipelineApiError(Exception):
    """Non-2xx response from the pipeline API."""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None, retryable: bool = False):
        self.status_code = status_code
        self.message = message
        self.code = code
        self.retryable = retryable
        super().__init__(f"{status_code} {code or 'error'}: {message}")

    @property
    def too_early(self) -> bool:
        return self.status_code == 425


class PipelineApiClient:
    """Calls the transcript and evaluation endpoints as one principal."""

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = config.PERSIST_TIMEOUT_SECONDS,
        evaluation_timeout: float = config.INFERENCE_TIMEOUT_SECONDS + config.PERSIST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.evaluation_timeout = evaluation_timeout
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers or {},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def for_internal_service(cls, base_url: str, service_key: str = config.INTERNAL_SERVICE_KEY, **kwargs):
        return cls(base_url, headers={"X-Internal-Service-Key": service_key}, **kwargs)

    @classmethod
    def for_user(cls, base_url: str, user_id: str, role: UserRole = UserRole.LEARNER, **kwargs):
        return cls(base_url, headers={"X-User-Id": user_id, "X-User-Role": role.value}, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def replace_transcript(
        self,
        session_id: str,
        turns: Sequence[TurnEvent],
        attempt_number: Optional[int] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "turns": [turn.model_dump(by_alias=True, mode="json") for turn in turns],
        }
        if attempt_number is not None:
            payload["attemptNumber"] = attempt_number

        response = await self._client.post(f"/api/v1/sessions/{session_id}/transcript", json=payload)
        return self._handle(response)

    async def request_evaluation(self, session_id: str) -> Dict[str, Any]:
        response = await self._client.post(
            f"/api/v1/sessions/{session_id}/evaluate",
            timeout=self.evaluation_timeout,
        )
        return self._handle(response)

    @staticmethod
    def _handle(response: httpx.Response) -> Dict[str, Any]:
        if response.status_code < 400:
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        raise PipelineApiError(
            response.status_code,
            body.get("message") or response.reason_phrase,
            code=body.get("code"),
            retryable=bool(body.get("retryable", False)),
        )
