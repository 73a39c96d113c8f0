"""
Common schemas for API responses and error handling.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """Schema for detailed error information."""

    code: str = Field(..., description="Error code for programmatic handling")
    category: str = Field(..., description="Coarse error family")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    suggestions: Optional[List[str]] = Field(None, description="Helpful suggestions for resolving the error")


class ErrorResponse(BaseModel):
    """Schema for API error responses."""

    error: ErrorDetail
    error_id: str
    timestamp: str

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "error": {
                        "code": "duplicate_name",
                        "category": "conflict",
                        "message": "This full name already holds an active reservation.",
                        "details": {
                            "full_name": "Eve Adams",
                            "existing_reservation": {"full_name": "Eve Adams", "status": "confirmed", "position": 1}
                        },
                    },
                    "error_id": "5b0b7f7e-1e55-4f0a-9a59-8d1f3b1c1a11",
                    "timestamp": "2026-01-01T12:00:00+00:00"
                }
            ]
        }
    )


class SuccessResponse(BaseModel):
    """Schema for simple success responses."""

    message: str = Field(..., description="Success message")
    data: Optional[Dict[str, Any]] = Field(None, description="Additional response data")


class HealthStatus(BaseModel):
    """Schema for health check responses."""

    status: str = Field(..., description="Overall health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    timestamp: str = Field(..., description="Health check timestamp")
