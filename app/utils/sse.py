"""
Server-sent event framing.

Each event is an optional ``event:`` line, one ``data:`` line carrying a JSON
object, and a blank line. JSON string escaping keeps newlines inside a
fragment from breaking the frame.
"""
import json
from typing import Any, Dict, Optional

from app.models.response import StreamEventType

# Comment frame sent as soon as the channel opens
STREAM_OPEN = ":ok\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(data: Dict[str, Any], event: Optional[str] = None) -> str:
    """Frame ``data`` as one SSE event; ``event`` is omitted for deltas."""
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.append(f"data: {json.dumps(data, ensure_ascii=False)}")
    return "\n".join(lines) + "\n\n"


def delta_event(text: str) -> str:
    return format_event({"delta": text})


def done_event() -> str:
    return format_event({}, event=StreamEventType.DONE.value)


def error_event(message: str) -> str:
    return format_event({"message": message}, event=StreamEventType.ERROR.value)
