"""Tests for the terminal demo."""

from unittest.mock import patch

from conftest import FakeTransport, sse_chunk
from streamchat.client import ChatClient

import app


async def test_prints_answer(endpoint, hello_frames, capsys):
    client = ChatClient(FakeTransport(hello_frames), endpoint=endpoint)

    code = await app.stream_to_terminal(client, "Say hello")

    assert code == 0
    assert capsys.readouterr().out == "Hello\n"


async def test_prints_error_to_stderr(endpoint, capsys):
    frames = [sse_chunk("Cut"), sse_chunk(finish_reason="length")]
    client = ChatClient(FakeTransport(frames), endpoint=endpoint)

    code = await app.stream_to_terminal(client, "hi")

    captured = capsys.readouterr()
    assert code == 1
    assert captured.out == "Cut\n"
    assert captured.err.startswith("API Error: <-1>")


async def test_main_requires_prompt(capsys):
    assert await app.main(["app.py"]) == 2
    assert "usage" in capsys.readouterr().err


async def test_main_streams_with_configured_client(config, hello_frames, capsys):
    transport = FakeTransport(hello_frames)

    with patch("app.create_chat_client", return_value=ChatClient(transport, endpoint=config.endpoint())):
        code = await app.main(["app.py", "Say", "hello"])

    assert code == 0
    assert transport.requests[0].payload["messages"][0]["content"] == "Say hello"
    assert transport.closed is True
