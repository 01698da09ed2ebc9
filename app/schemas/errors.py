"""
Error schema models for the API.

Every non-2xx response from the pipeline uses ``ErrorResponse``.
"""

from pydantic import BaseModel, Field
from typing import List, Optional

class ValidationErrorItem(BaseModel):
    """A single request validation problem."""
    field: Optional[str] = Field(
        None, 
        description="The field path that caused the error",
        examples=["body.turns.0.turnOrder"]
    )
    message: str = Field(
        ..., 
        description="Human-readable error message",
        examples=["Input should be greater than or equal to 0"]
    )
    type: str = Field(
        ..., 
        description="The error type identifier",
        examples=["greater_than_equal"]
    )

class ErrorDetail(BaseModel):
    """Details of a request validation failure."""
    errors: List[ValidationErrorItem] = Field(
        ..., 
        description="List of validation errors"
    )

class ErrorResponse(BaseModel):
    """Standard error response format."""
    status: str = Field(
        "error", 
        description="Error status",
        examples=["error"]
    )
    message: str = Field(
        ..., 
        description="General error message",
        examples=["Transcript is not ready yet, retry shortly"]
    )
    code: str = Field(
        "error",
        description="Machine-readable error code",
        examples=["transcript_not_ready"]
    )
    retryable: bool = Field(
        False,
        description="Whether retrying the same request may succeed"
    )
    detail: Optional[ErrorDetail] = Field(
        None, 
        description="Detailed error information if available"
    )
    
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": "error",
                    "message": "Transcript is not ready yet, retry shortly",
                    "code": "transcript_not_ready",
                    "retryable": True
                }
            ]
        }
    }
