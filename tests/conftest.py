import asyncio
import json

import pytest

from config import Config
from streamchat.endpoint import ProtocolVariant, ServerEndpoint
from streamchat.frames import Framing, StreamFrame


def sse_chunk(content=None, finish_reason=None, role=None, chunk_id="1"):
    """One OpenAI-style SSE line."""
    delta = {}
    if content is not None:
        delta["content"] = content
    if role is not None:
        delta["role"] = role
    payload = {
        "id": chunk_id,
        "object": "chat.completion.chunk",
        "choices": [{"delta": delta, "finish_reason": finish_reason}],
    }
    return "data: " + json.dumps(payload)


def llama_stack_event(event_type, text="", stop_reason=None, delta_type="text"):
    """One Llama Stack SSE line."""
    delta = {"type": delta_type}
    if delta_type == "text":
        delta["text"] = text
    event = {"event_type": event_type, "delta": delta}
    if stop_reason is not None:
        event["stop_reason"] = stop_reason
    return "data: " + json.dumps({"event": event})


class FakeTransport:
    """
    In-memory TransportSession.

    Yields the given frames in order. A frame may be a string (SSE line), a
    StreamFrame, or a float meaning "sleep this long before the next frame".
    """

    name = "fake"

    def __init__(
        self,
        frames=(),
        *,
        open_error=None,
        variants=frozenset({ProtocolVariant.OPENAI, ProtocolVariant.LLAMA_STACK}),
        gate=None,
    ):
        self.frames = list(frames)
        self.open_error = open_error
        self.variants = variants
        self.gate = gate
        self.requests = []
        self.opened = 0
        self.released = 0
        self.closed = False

    async def open(self, request):
        self.requests.append(request)
        self.opened += 1
        try:
            if self.open_error is not None:
                raise self.open_error
            for frame in self.frames:
                if isinstance(frame, float):
                    await asyncio.sleep(frame)
                    continue
                if isinstance(frame, StreamFrame):
                    yield frame
                else:
                    yield StreamFrame(text=frame, framing=Framing.SSE)
                if self.gate is not None:
                    await self.gate.wait()
        finally:
            self.released += 1

    async def aclose(self):
        self.closed = True


@pytest.fixture
def endpoint():
    return ServerEndpoint(
        base_url="http://localhost:11434",
        model="llama3.2:latest",
        name="test-server",
    )


@pytest.fixture
def llama_stack_endpoint():
    return ServerEndpoint(
        base_url="http://127.0.0.1:5001",
        model="meta-llama/Llama-3.1-8B-Instruct",
        protocol_variant=ProtocolVariant.LLAMA_STACK,
    )


@pytest.fixture
def hello_frames():
    return [sse_chunk("Hel", role="assistant"), sse_chunk("lo"), "data: [DONE]"]


@pytest.fixture
def mock_env_vars():
    """Provide fake environment variables for testing."""

    return {
        "CHAT_BASE_URL": "http://localhost:11434",
        "CHAT_API_KEY": "test-key-123",
        "CHAT_MODEL": "llama3.2:latest",
        "CHAT_PROTOCOL": "openai",
        "CHAT_TRANSPORT": "httpx",
        "CHAT_IDLE_TIMEOUT": "30",
        "API_KEY": "test-api-key",
        "ALLOWED_ORIGINS": "http://localhost:3000",
    }


@pytest.fixture
def config(mock_env_vars, monkeypatch):
    monkeypatch.setattr("config.load_dotenv", lambda **kwargs: None)
    for key, value in mock_env_vars.items():
        monkeypatch.setenv(key, value)

    return Config.from_env()
