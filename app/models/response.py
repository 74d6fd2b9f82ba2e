from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResponseStatus(str, Enum):
    """Response status enumeration"""
    SUCCESS = "success"
    ERROR = "error"


class StreamEventType(str, Enum):
    """Event types sent over the streaming channel"""
    DELTA = "delta"
    DONE = "done"
    ERROR = "error"


class ChatResponse(BaseModel):
    """Non-streaming chat response model"""
    status: ResponseStatus = Field(..., description="Response status")
    message: str = Field(..., description="Generated text")
    model: Optional[str] = Field(None, description="Model name used for generation")
    processing_time_ms: Optional[float] = Field(None, ge=0, description="Processing time in milliseconds")

    model_config = {
        "protected_namespaces": (),
        "json_schema_extra": {
            "example": {
                "status": "success",
                "message": "Star Wars is a space opera franchise...",
                "model": "gemini-2.5-flash",
                "processing_time_ms": 2500.5
            }
        },
    }


class ExtractionResponse(BaseModel):
    """Structured extraction response model"""
    status: ResponseStatus = Field(..., description="Response status")
    schema_name: str = Field(..., description="Output model the data was validated against")
    data: Dict[str, Any] = Field(..., description="Validated structured output")
    model: Optional[str] = Field(None, description="Model name used for generation")
    processing_time_ms: Optional[float] = Field(None, ge=0, description="Processing time in milliseconds")

    model_config = {"protected_namespaces": ()}


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="ok or degraded")
    llm_ok: bool = Field(..., description="Provider reachable with the configured key")
    model_name: Optional[str] = Field(None, description="Configured model name")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")

    model_config = {"protected_namespaces": ()}


class ErrorResponse(BaseModel):
    """Error response model"""
    status: ResponseStatus = Field(default=ResponseStatus.ERROR, description="Error status")
    error_code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp")

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "error",
                "error_code": "INVALID_INPUT",
                "message": "message is required",
                "timestamp": "2024-01-10T12:30:00Z"
            }
        }
    }
