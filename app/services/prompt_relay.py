"""
Prompt Relay

One-shot generation. Returns the full text, or, given an output model,
asks the provider for schema-constrained JSON and validates the reply.
"""

from typing import Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from app.core.errors import InvalidPromptError, OutputValidationError
from app.core.logging import get_logger
from app.llm.client import GenerationConfig, LLMClient, get_llm_client
from app.utils.schema import response_schema

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


class PromptRelay:
    """
    Service for non-streaming generation and structured extraction.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self.llm_client = llm_client or get_llm_client()

        logger.info("Initialized PromptRelay")

    def handle(
        self,
        prompt: Optional[str],
        output_model: Optional[Type[T]] = None,
        config: Optional[GenerationConfig] = None,
    ) -> Union[str, T]:
        """
        Generate a complete response for ``prompt``.

        Args:
            prompt: User prompt
            output_model: Pydantic model the output must conform to
            config: Generation options

        Returns:
            The generated text, or a validated ``output_model`` instance

        Raises:
            InvalidPromptError: If prompt is missing or empty
            UpstreamError: If the provider call fails
            OutputValidationError: If structured output does not conform
        """
        if not prompt:
            raise InvalidPromptError("message is required")

        if output_model is None:
            return self.llm_client.generate(prompt, config)
        return self.extract(prompt, output_model, config)

    def extract(
        self,
        prompt: str,
        output_model: Type[T],
        config: Optional[GenerationConfig] = None,
    ) -> T:
        """Request JSON constrained to ``output_model`` and validate it."""
        config = (config or GenerationConfig()).model_copy(update={
            "response_mime_type": "application/json",
            "response_json_schema": response_schema(output_model),
        })

        logger.info(f"Generating structured output for {output_model.__name__}")
        raw_text = self.llm_client.generate(prompt, config)

        try:
            result = output_model.model_validate_json(raw_text.strip())
        except ValidationError as e:
            logger.error(f"Structured output failed validation: {e}")
            logger.error(f"Received raw JSON text: {raw_text}")
            raise OutputValidationError(
                f"Output does not match {output_model.__name__}",
                raw_text=raw_text,
                errors=e.errors(include_url=False),
            ) from e

        logger.info(f"Structured output validated against {output_model.__name__}")
        return result


# Global relay instance
_prompt_relay = None


def get_prompt_relay() -> PromptRelay:
    """Get or create the prompt relay"""
    global _prompt_relay
    if _prompt_relay is None:
        _prompt_relay = PromptRelay()
    return _prompt_relay
