from typing import AsyncIterator, Optional

from starlette.concurrency import iterate_in_threadpool

from app.llm.client import GenerationConfig, LLMClient, get_llm_client
from app.core.logging import get_logger

logger = get_logger(__name__)


async def stream_fragments(
    prompt: str,
    client: Optional[LLMClient] = None,
    config: Optional[GenerationConfig] = None,
) -> AsyncIterator[str]:
    """
    Async view over the client's blocking fragment stream.

    Each fragment is pulled in the threadpool so the event loop stays free
    while waiting on the provider. The underlying generator is closed on
    exit, which releases the upstream HTTP response even when the caller
    goes away mid-stream.

    Args:
        prompt: User prompt
        client: LLM client (defaults to the shared client)
        config: Generation options

    Yields:
        Text fragments in the order the provider produced them
    """
    client = client or get_llm_client()
    fragments = client.stream(prompt, config)

    logger.debug(f"Starting stream for prompt: {prompt[:50]}...")
    try:
        async for fragment in iterate_in_threadpool(fragments):
            yield fragment
    finally:
        # a worker thread is never mid-next() here: cancellation of the
        # threadpool call waits for it to return
        close = getattr(fragments, "close", None)
        if close is not None:
            close()
