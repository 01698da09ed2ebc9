"""
Error taxonomy for the transcript pipeline.

Every error carries the HTTP status it maps to and whether a caller may
safely retry. Evaluation polling keys off the status code only: 425 means
keep polling, anything else stops the loop.
"""

from typing import Optional

from fastapi import status


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "pipeline_error"
    retryable: bool = False
    default_message: str = "Internal pipeline error"

    def __init__(self, message: Optional[str] = None, retryable: Optional[bool] = None):
        self.message = message or self.default_message
        if retryable is not None:
            self.retryable = retryable
        super().__init__(self.message)


class SessionNotFoundError(PipelineError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "session_not_found"
    default_message = "Session not found"


class SessionNotActiveError(PipelineError):
    status_code = status.HTTP_409_CONFLICT
    code = "session_not_active"
    default_message = "Session is no longer active"


class AccessDeniedError(PipelineError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "access_denied"
    default_message = "Not allowed to act on this session"


class AuthenticationRequiredError(PipelineError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_required"
    default_message = "Missing caller identity"


class MalformedTranscriptError(PipelineError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "malformed_transcript"
    default_message = "Malformed transcript payload"


class InvalidRequestError(PipelineError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_request"
    default_message = "Invalid request"


class AttemptMismatchError(PipelineError):
    status_code = status.HTTP_409_CONFLICT
    code = "attempt_mismatch"
    default_message = "Attempt number does not exist for this session"


class PayloadTooLargeError(PipelineError):
    status_code = 413
    code = "payload_too_large"
    default_message = "Transcript payload exceeds the allowed size"


class StorageUnavailableError(PipelineError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "storage_unavailable"
    retryable = True
    default_message = "Storage is temporarily unavailable, retry later"


class TranscriptNotReadyError(PipelineError):
    """Raised when evaluation is requested before enough turns are stored."""

    status_code = status.HTTP_425_TOO_EARLY
    code = "transcript_not_ready"
    retryable = True
    default_message = "Transcript is not ready yet, retry shortly"


class EvaluationConflictError(PipelineError):
    status_code = status.HTTP_409_CONFLICT
    code = "evaluation_conflict"
    default_message = "Evaluation can no longer be generated for this session"


class InferenceRefusalError(PipelineError):
    status_code = 422
    code = "inference_refused"
    default_message = "Could not generate from this content"


class InferenceTimeoutError(PipelineError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "inference_timeout"
    retryable = True
    default_message = "Inference service timed out"


class InferenceServiceError(PipelineError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "inference_unavailable"
    retryable = True
    default_message = "Inference service failed"


class MalformedInferenceResultError(PipelineError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "inference_malformed"
    retryable = True
    default_message = "Inference service returned an unusable result"


class ScenarioNotFoundError(PipelineError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "scenario_not_found"
    default_message = "Scenario not found"
