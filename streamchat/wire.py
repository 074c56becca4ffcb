"""
Pydantic models for the chat-completion wire formats.

Field names follow the snake_case JSON keys used by both OpenAI-compatible
servers and Llama Stack, so validation maps keys one-to-one. Every response
model ignores fields it does not declare: servers routinely add extras
(usage, logprobs, system_fingerprint, ...).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict


class WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


# Requests

class WireMessage(WireModel):
    role: Literal["system", "user", "assistant"]
    content: str


class OpenAIChatBody(WireModel):
    """Body for POST /v1/chat/completions."""

    model: str
    messages: list[WireMessage]
    stream: bool = True


class LlamaStackChatBody(WireModel):
    """Body for POST /v1/inference/chat-completion."""

    model_id: str
    messages: list[WireMessage]
    stream: bool = True


# OpenAI-compatible stream chunks

class ChunkDelta(WireModel):
    content: str | None = None
    role: str | None = None


class ChunkChoice(WireModel):
    delta: ChunkDelta
    finish_reason: str | None = None


class ChatCompletionChunk(WireModel):
    id: str
    object: str
    choices: list[ChunkChoice]


# Llama Stack stream events

class LlamaStackDelta(WireModel):
    type: str
    text: str | None = None


class LlamaStackEvent(WireModel):
    event_type: str
    delta: LlamaStackDelta
    stop_reason: str | None = None


class LlamaStackChunk(WireModel):
    event: LlamaStackEvent


# Errors

class WireError(WireModel):
    message: str | None = None
    type: str | None = None
    param: str | None = None
    code: str | int | None = None


class ErrorEnvelope(WireModel):
    """
    {"error": {...}} as sent in HTTP error bodies or inline in a stream.

    Some servers (Ollama's native API among them) send {"error": "text"} instead.
    """

    error: WireError | str

    @property
    def message(self) -> str | None:
        if isinstance(self.error, str):
            return self.error
        return self.error.message

    @property
    def code(self) -> str | int | None:
        if isinstance(self.error, str):
            return None
        return self.error.code
