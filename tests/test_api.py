import json

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.errors import UpstreamError
from app.llm.client import set_llm_client
from app.main import app
from app.services.prompt_relay import PromptRelay, get_prompt_relay
from app.services import stream_relay as stream_relay_module
from app.services.stream_relay import StreamRelay, get_stream_relay


class FakeLLM:
    model = "fake-model"

    def __init__(self, fragments=(), text="", error=None):
        self.fragments = list(fragments)
        self.text = text
        self.error = error
        self.stream_calls = 0

    def generate(self, prompt, config=None):
        if self.error is not None:
            raise self.error
        return self.text

    def stream(self, prompt, config=None):
        self.stream_calls += 1
        for fragment in self.fragments:
            yield fragment
        if self.error is not None:
            raise self.error

    def get_model_info(self):
        if self.error is not None:
            raise self.error
        return {"name": f"models/{self.model}"}


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()
    set_llm_client(None)


def use_llm(fake):
    app.dependency_overrides[get_stream_relay] = lambda: StreamRelay(llm_client=fake)
    app.dependency_overrides[get_prompt_relay] = lambda: PromptRelay(llm_client=fake)
    return fake


def roster(count):
    character = {
        "name": "Luke Skywalker",
        "affiliation": "Rebel Alliance",
        "species": "Human",
        "homeworld": "Tatooine",
        "force_sensitive": True,
    }
    return json.dumps({"era": "Galactic Civil War", "characters": [character] * count})


EXPECTED_HELLO = (
    ":ok\n\n"
    'data: {"delta": "Hello, "}\n\n'
    'data: {"delta": "world!"}\n\n'
    "event: done\ndata: {}\n\n"
)


def test_get_stream(client):
    use_llm(FakeLLM(["Hello, ", "world!"]))

    response = client.get("/api/chat/stream", params={"message": "Say hello"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert response.text == EXPECTED_HELLO


def test_post_stream(client):
    use_llm(FakeLLM(["Hello, ", "world!"]))

    response = client.post("/api/chat/stream", json={"message": "Say hello"})

    assert response.status_code == 200
    assert response.text == EXPECTED_HELLO


def test_stream_error_event(client):
    use_llm(FakeLLM(["Hello"], error=UpstreamError("upstream 500 with secret detail")))

    response = client.post("/api/chat/stream", json={"message": "Say hello"})

    assert response.status_code == 200
    assert response.text == (
        ":ok\n\n"
        'data: {"delta": "Hello"}\n\n'
        'event: error\ndata: {"message": "Server error"}\n\n'
    )


@pytest.mark.parametrize("params", [{}, {"message": ""}])
def test_get_stream_missing_prompt(client, params):
    fake = use_llm(FakeLLM(["never"]))

    response = client.get("/api/chat/stream", params=params)

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("application/json")
    assert response.json()["error_code"] == "INVALID_INPUT"
    assert fake.stream_calls == 0


@pytest.mark.parametrize("body", [{}, {"message": ""}, None])
def test_post_stream_missing_prompt(client, body):
    fake = use_llm(FakeLLM(["never"]))

    response = client.post("/api/chat/stream", json=body)

    assert response.status_code == 400
    assert response.json()["message"] == "message is required"
    assert fake.stream_calls == 0


def test_chat_returns_full_text(client):
    use_llm(FakeLLM(text="Star Wars is a space opera."))

    response = client.post("/api/chat", json={"message": "Explain star wars"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["message"] == "Star Wars is a space opera."
    assert body["model"] == "fake-model"


def test_chat_upstream_failure_is_generic(client):
    use_llm(FakeLLM(error=UpstreamError("401 key AIza-secret rejected")))

    response = client.post("/api/chat", json={"message": "Explain star wars"})

    assert response.status_code == 502
    body = response.json()
    assert body["error_code"] == "UPSTREAM_FAILURE"
    assert "secret" not in response.text


def test_extract_valid_roster(client):
    use_llm(FakeLLM(text=roster(3)))

    response = client.post("/api/extract/star-wars-characters", json={})

    assert response.status_code == 200
    body = response.json()
    assert body["schema_name"] == "star-wars-characters"
    assert len(body["data"]["characters"]) == 3


@pytest.mark.parametrize("count", [2, 4])
def test_extract_wrong_count(client, count):
    use_llm(FakeLLM(text=roster(count)))

    response = client.post("/api/extract/star-wars-characters", json={"message": "extract"})

    assert response.status_code == 502
    assert response.json()["error_code"] == "VALIDATION_FAILURE"


def test_extract_unknown_schema(client):
    use_llm(FakeLLM(text=roster(3)))

    response = client.post("/api/extract/planets", json={})

    assert response.status_code == 404
    assert response.json()["error_code"] == "UNKNOWN_SCHEMA"


def test_health_ok(client):
    set_llm_client(FakeLLM())

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_health_degraded(client):
    set_llm_client(FakeLLM(error=UpstreamError("unreachable")))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["llm_ok"] is False


def test_missing_credential_is_service_unavailable(client, monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    monkeypatch.setattr(stream_relay_module, "_stream_relay", None)
    set_llm_client(None)

    response = client.get("/api/chat/stream", params={"message": "Say hello"})

    assert response.status_code == 503
    body = response.json()
    assert body["error_code"] == "MISSING_CREDENTIAL"
    assert "GEMINI_API_KEY" not in body["message"]
