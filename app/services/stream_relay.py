"""
Streaming Relay

Adapts the provider's fragment stream into a server-sent event channel.

Every stream that gets past prompt validation is shaped the same way:
- the ``:ok`` comment frame
- zero or more ``delta`` events, one per fragment, in arrival order
- exactly one terminal event, ``done`` or ``error``

The ``error`` event only ever carries a generic message; the failure itself
goes to the log.
"""

import asyncio
from contextlib import aclosing
from typing import AsyncIterator, Optional

from fastapi.responses import StreamingResponse

from app.core.config import settings
from app.core.errors import InvalidPromptError
from app.core.logging import get_logger
from app.llm.client import GenerationConfig, LLMClient, get_llm_client
from app.llm.streaming import stream_fragments
from app.utils.sse import SSE_HEADERS, STREAM_OPEN, delta_event, done_event, error_event

logger = get_logger(__name__)


class StreamRelay:
    """
    Stateless relay; one instance serves every streaming request.
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        error_message: str = settings.STREAM_ERROR_MESSAGE,
    ):
        self.llm_client = llm_client or get_llm_client()
        self.error_message = error_message

        logger.info("Initialized StreamRelay")

    @staticmethod
    def validate_prompt(prompt: Optional[str]) -> str:
        """
        Reject a missing or empty prompt.

        Raises:
            InvalidPromptError: If prompt is None or ""
        """
        if not prompt:
            raise InvalidPromptError("message is required")
        return prompt

    async def events(
        self,
        prompt: str,
        config: Optional[GenerationConfig] = None,
    ) -> AsyncIterator[str]:
        """
        Yield framed events for one request.

        Args:
            prompt: Validated user prompt
            config: Generation options

        Yields:
            SSE frames, ending in exactly one terminal event
        """
        yield STREAM_OPEN

        sent = 0
        try:
            async with aclosing(stream_fragments(prompt, self.llm_client, config)) as fragments:
                async for fragment in fragments:
                    yield delta_event(fragment)
                    sent += 1
        except asyncio.CancelledError:
            logger.info(f"Client disconnected after {sent} fragments")
            raise
        except Exception as e:
            logger.error(f"Streaming error after {sent} fragments: {e!r}")
            yield error_event(self.error_message)
            return

        logger.debug(f"Stream completed ({sent} fragments)")
        yield done_event()

    def handle(
        self,
        prompt: Optional[str],
        config: Optional[GenerationConfig] = None,
    ) -> StreamingResponse:
        """
        Validate the prompt, then open the event channel.

        Validation happens before the response object exists, so an invalid
        prompt never produces a channel or any events.

        Raises:
            InvalidPromptError: If prompt is missing or empty
        """
        prompt = self.validate_prompt(prompt)
        return StreamingResponse(
            self.events(prompt, config),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )


# Global relay instance
_stream_relay = None


def get_stream_relay() -> StreamRelay:
    """Get or create the streaming relay"""
    global _stream_relay
    if _stream_relay is None:
        _stream_relay = StreamRelay()
    return _stream_relay
