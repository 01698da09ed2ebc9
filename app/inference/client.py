"""
HTTP client for the inference service.

Refusals, timeouts and malformed output each raise a distinct error from
``app.errors`` so callers can tell them apart from success and from each
other.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from app import config
from app.errors import (
    InferenceRefusalError, InferenceTimeoutError,
    InferenceServiceError, MalformedInferenceResultError,
)
from app.inference.prompts import (
    build_scoring_messages, build_analysis_messages,
    scoring_schema, analysis_schema,
)
from app.models.enums import CONSISTENCY_FLAG_TYPES
from app.inference.schemas import (
    ScoringResult, AnalysisResult, ScenarioContext,
)

# Set up logging
logger = logging.getLogger(__name__)


class InferenceClient:
    """Async client for schema-constrained chat completions."""

    def __init__(
        self,
        base_url: str = config.INFERENCE_BASE_URL,
        api_key: str = config.INFERENCE_API_KEY,
        model: str = config.INFERENCE_MODEL,
        timeout: float = config.INFERENCE_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self.model = model
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def score_transcript(
        self, turns: Sequence[Any], scenario: Optional[ScenarioContext] = None
    ) -> ScoringResult:
        """Grade the trainee's side of a transcript."""
        data = await self._structured_completion(
            build_scoring_messages(turns, scenario),
            schema_name="session_evaluation",
            schema=scoring_schema(),
        )
        try:
            return ScoringResult.model_validate(data)
        except ValidationError as e:
            raise MalformedInferenceResultError(f"Scoring result failed validation: {e.error_count()} errors") from e

    async def classify_transcript(
        self, turns: Sequence[Any], scenario: Optional[ScenarioContext] = None
    ) -> AnalysisResult:
        """Run the combined misuse + consistency scan over a transcript."""
        include_consistency = scenario is not None and scenario.has_prompt
        data = await self._structured_completion(
            build_analysis_messages(turns, scenario),
            schema_name="session_analysis",
            schema=analysis_schema(include_consistency),
        )
        try:
            result = AnalysisResult.model_validate(data)
        except ValidationError as e:
            raise MalformedInferenceResultError(f"Analysis result failed validation: {e.error_count()} errors") from e

        if not include_consistency:
            dropped = [f for f in result.findings if f.category in CONSISTENCY_FLAG_TYPES]
            if dropped:
                logger.warning(f"Dropping {len(dropped)} consistency findings returned without a scenario prompt")
                result.findings = [f for f in result.findings if f.category not in CONSISTENCY_FLAG_TYPES]
        return result

    async def _structured_completion(
        self, messages: List[Dict[str, str]], schema_name: str, schema: Dict[str, Any]
    ) -> Dict[str, Any]:
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.2,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "strict": True, "schema": schema},
            },
        }

        try:
            response = await asyncio.wait_for(
                self._client.post("/chat/completions", json=payload),
                timeout=self.timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise InferenceTimeoutError(f"{schema_name} call exceeded {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise InferenceServiceError(f"{schema_name} call failed: {e}") from e

        if response.status_code >= 400:
            retryable = response.status_code == 429 or response.status_code >= 500
            raise InferenceServiceError(
                f"Inference service returned {response.status_code} for {schema_name}",
                retryable=retryable,
            )

        try:
            choice = response.json()["choices"][0]
            message = choice["message"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedInferenceResultError(f"Unexpected {schema_name} response shape") from e

        if message.get("refusal") or choice.get("finish_reason") == "content_filter":
            logger.info(f"Inference service refused {schema_name}: {message.get('refusal')}")
            raise InferenceRefusalError()

        if choice.get("finish_reason") == "length":
            raise MalformedInferenceResultError(f"{schema_name} output was truncated")

        content = message.get("content")
        try:
            data = json.loads(content)
        except (TypeError, ValueError) as e:
            raise MalformedInferenceResultError(f"{schema_name} content is not JSON") from e

        if not isinstance(data, dict):
            raise MalformedInferenceResultError(f"{schema_name} content is not a JSON object")
        return data
