from pydantic import BaseModel, Field
from typing import Optional


class ChatRequest(BaseModel):
    """Chat request model.

    ``message`` is optional at the schema level so a missing prompt is
    reported by the relay as a 400 rather than a 422 from body validation.
    """
    message: Optional[str] = Field(default=None, description="User prompt")
    temperature: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=2.0,
        description="LLM temperature (0.0 to 2.0)"
    )
    max_tokens: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum tokens to generate"
    )


class ExtractionRequest(BaseModel):
    """Structured extraction request model"""
    message: Optional[str] = Field(
        default=None,
        description="Prompt; the output model's default prompt is used when omitted"
    )
