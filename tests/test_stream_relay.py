import asyncio
import json
import time

import pytest

from app.core.errors import InvalidPromptError, UpstreamError
from app.services.stream_relay import StreamRelay


class FakeLLMStream:
    model = "fake-model"

    def __init__(self, fragments, error=None, delay=0.0):
        self.fragments = fragments
        self.error = error
        self.delay = delay
        self.calls = 0
        self.closed = False

    def generate(self, prompt, config=None):
        return "".join(self.fragments)

    def stream(self, prompt, config=None):
        self.calls += 1
        try:
            for fragment in self.fragments:
                if self.delay:
                    time.sleep(self.delay)
                yield fragment
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


def collect(relay, prompt="Hi"):
    async def run():
        return [frame async for frame in relay.events(prompt)]
    return asyncio.run(run())


def parse_frames(frames):
    """Turn raw SSE frames into (event, data) pairs, skipping comment frames"""
    events = []
    for frame in frames:
        assert frame.endswith("\n\n")
        if frame.startswith(":"):
            continue
        event, data = "delta", None
        for line in frame.rstrip("\n").split("\n"):
            field, _, value = line.partition(": ")
            if field == "event":
                event = value
            elif field == "data":
                data = json.loads(value)
        events.append((event, data))
    return events


def test_fragments_then_done():
    relay = StreamRelay(llm_client=FakeLLMStream(["Hello, ", "world!"]))

    frames = collect(relay)

    assert frames[0] == ":ok\n\n"
    assert parse_frames(frames) == [
        ("delta", {"delta": "Hello, "}),
        ("delta", {"delta": "world!"}),
        ("done", {}),
    ]


def test_wire_format_of_delta_and_done():
    relay = StreamRelay(llm_client=FakeLLMStream(["Hello, "]))

    frames = collect(relay)

    assert frames[1] == 'data: {"delta": "Hello, "}\n\n'
    assert frames[-1] == "event: done\ndata: {}\n\n"


def test_failure_after_one_fragment_ends_with_single_error():
    fake = FakeLLMStream(["Hello"], error=UpstreamError("quota exceeded for key abc123"))
    relay = StreamRelay(llm_client=fake)

    frames = collect(relay)

    assert parse_frames(frames) == [
        ("delta", {"delta": "Hello"}),
        ("error", {"message": "Server error"}),
    ]
    assert frames[-1] == 'event: error\ndata: {"message": "Server error"}\n\n'
    # internal detail never reaches the caller
    assert not any("quota" in frame for frame in frames)


def test_failure_before_any_fragment():
    relay = StreamRelay(llm_client=FakeLLMStream([], error=ConnectionError("boom")))

    events = parse_frames(collect(relay))

    assert events == [("error", {"message": "Server error"})]


def test_empty_fragment_is_still_a_delta():
    relay = StreamRelay(llm_client=FakeLLMStream(["a", "", "b"]))

    events = parse_frames(collect(relay))

    assert [data["delta"] for kind, data in events if kind == "delta"] == ["a", "", "b"]
    assert events[-1] == ("done", {})


def test_multiline_fragment_stays_in_one_frame():
    relay = StreamRelay(llm_client=FakeLLMStream(["line one\nline two\n\n"]))

    frames = collect(relay)

    assert frames[1].count("\n\n") == 1
    assert parse_frames(frames)[0] == ("delta", {"delta": "line one\nline two\n\n"})


def test_exactly_one_terminal_event():
    for fake in (FakeLLMStream(["x", "y"]), FakeLLMStream(["x"], error=RuntimeError("bad"))):
        events = parse_frames(collect(StreamRelay(llm_client=fake)))
        terminal = [kind for kind, _ in events if kind in ("done", "error")]
        assert len(terminal) == 1
        assert events[-1][0] in ("done", "error")


@pytest.mark.parametrize("prompt", [None, ""])
def test_invalid_prompt_rejected_before_channel(prompt):
    fake = FakeLLMStream(["never"])
    relay = StreamRelay(llm_client=fake)

    with pytest.raises(InvalidPromptError):
        relay.handle(prompt)
    assert fake.calls == 0


def test_handle_returns_event_stream_response():
    relay = StreamRelay(llm_client=FakeLLMStream(["x"]))

    response = relay.handle("Hi")

    assert response.media_type == "text/event-stream"
    assert response.headers["cache-control"] == "no-cache"


def test_closing_the_channel_closes_upstream():
    fake = FakeLLMStream(["one", "two", "three"])
    relay = StreamRelay(llm_client=fake)

    async def run():
        events = relay.events("Hi")
        assert await events.__anext__() == ":ok\n\n"
        await events.__anext__()
        await events.aclose()

    asyncio.run(run())

    assert fake.closed


def test_concurrent_streams_keep_their_own_order():
    fakes = [
        FakeLLMStream([f"a{i}" for i in range(5)], delay=0.01),
        FakeLLMStream([f"b{i}" for i in range(5)], delay=0.01),
    ]
    relays = [StreamRelay(llm_client=fake) for fake in fakes]

    async def run():
        async def drain(relay, prompt):
            return [frame async for frame in relay.events(prompt)]
        return await asyncio.gather(drain(relays[0], "a"), drain(relays[1], "b"))

    first, second = asyncio.run(run())

    assert [d["delta"] for k, d in parse_frames(first) if k == "delta"] == [f"a{i}" for i in range(5)]
    assert [d["delta"] for k, d in parse_frames(second) if k == "delta"] == [f"b{i}" for i in range(5)]
    assert parse_frames(first)[-1] == ("done", {})
    assert parse_frames(second)[-1] == ("done", {})
