import time
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from app.core.errors import UnknownSchemaError
from app.llm.client import GenerationConfig
from app.models.extraction import EXTRACTION_SCHEMAS
from app.models.request import ChatRequest, ExtractionRequest
from app.models.response import ChatResponse, ExtractionResponse, ResponseStatus
from app.services.prompt_relay import PromptRelay, get_prompt_relay
from app.services.stream_relay import StreamRelay, get_stream_relay

router = APIRouter(prefix="/api")


def _generation_config(request: ChatRequest) -> GenerationConfig:
    return GenerationConfig(
        temperature=request.temperature,
        max_output_tokens=request.max_tokens,
    )


@router.get("/chat/stream")
async def chat_stream_get(
    message: Optional[str] = None,
    relay: StreamRelay = Depends(get_stream_relay),
) -> StreamingResponse:
    """Stream a reply over SSE; prompt in the ``message`` query parameter."""
    return relay.handle(message)


@router.post("/chat/stream")
async def chat_stream_post(
    request: Optional[ChatRequest] = None,
    relay: StreamRelay = Depends(get_stream_relay),
) -> StreamingResponse:
    """Stream a reply over SSE; prompt in the ``message`` body field."""
    request = request or ChatRequest()
    return relay.handle(request.message, _generation_config(request))


@router.post("/chat", response_model=ChatResponse)
def chat(
    request: Optional[ChatRequest] = None,
    relay: PromptRelay = Depends(get_prompt_relay),
):
    """Non-streaming chat endpoint."""
    request = request or ChatRequest()
    start_time = time.time()
    text = relay.handle(request.message, config=_generation_config(request))
    return ChatResponse(
        status=ResponseStatus.SUCCESS,
        message=text,
        model=relay.llm_client.model,
        processing_time_ms=(time.time() - start_time) * 1000,
    )


@router.post("/extract/{schema_name}", response_model=ExtractionResponse)
def extract(
    schema_name: str,
    request: Optional[ExtractionRequest] = None,
    relay: PromptRelay = Depends(get_prompt_relay),
):
    """Structured extraction against a registered output model."""
    schema = EXTRACTION_SCHEMAS.get(schema_name)
    if schema is None:
        raise UnknownSchemaError(f"Unknown schema: {schema_name}")

    prompt = (request.message if request else None) or schema.default_prompt
    start_time = time.time()
    result = relay.handle(prompt, output_model=schema.output_model)
    return ExtractionResponse(
        status=ResponseStatus.SUCCESS,
        schema_name=schema.name,
        data=result.model_dump(),
        model=relay.llm_client.model,
        processing_time_ms=(time.time() - start_time) * 1000,
    )
