from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError

from streamchat.endpoint import ProtocolVariant
from streamchat.errors import api_error, decoding_error, status_from_error_code
from streamchat.wire import ChatCompletionChunk, ErrorEnvelope, LlamaStackChunk


logger = logging.getLogger(__name__)


class FinishReason(str, Enum):
    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    TOOL_CALLS = "tool_calls"
    FUNCTION_CALL = "function_call"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire(cls, value: str) -> "FinishReason":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


LLAMA_STACK_STOP_REASONS: dict[str, FinishReason] = {
    "end_of_turn": FinishReason.STOP,
    "end_of_message": FinishReason.STOP,
    "out_of_tokens": FinishReason.LENGTH,
}


@dataclass(frozen=True)
class ContentDelta:
    text_fragment: str | None = None
    role: str | None = None
    finish_reason: FinishReason | None = None
    raw_finish_reason: str | None = None


EMPTY_DELTA = ContentDelta()


def decode_chunk(json_text: str | bytes, variant: ProtocolVariant = ProtocolVariant.OPENAI) -> ContentDelta:
    """
    Decode one content payload into a ContentDelta.

    Raises ChatClientError with DECODING_ERROR for malformed JSON or a missing
    required field, and API_ERROR for an inline {"error": {...}} event.
    """
    try:
        data = json.loads(json_text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise decoding_error(f"Malformed JSON in stream chunk: {exc}") from exc

    if isinstance(data, dict) and "error" in data:
        _raise_inline_error(data)

    try:
        if variant is ProtocolVariant.LLAMA_STACK:
            return _from_llama_stack(LlamaStackChunk.model_validate(data))
        return _from_openai(ChatCompletionChunk.model_validate(data))
    except ValidationError as exc:
        raise decoding_error(
            f"Unexpected stream chunk shape: {exc.error_count()} validation error(s)"
        ) from exc


def _raise_inline_error(data: dict) -> None:
    try:
        envelope = ErrorEnvelope.model_validate(data)
    except ValidationError:
        # an "error" key that is not an error object, e.g. "error": null
        return
    message = envelope.message or json.dumps(data)
    raise api_error(status_from_error_code(envelope.code), message)


def _from_openai(chunk: ChatCompletionChunk) -> ContentDelta:
    if not chunk.choices:
        return EMPTY_DELTA

    choice = chunk.choices[0]
    finish = choice.finish_reason
    return ContentDelta(
        text_fragment=choice.delta.content,
        role=choice.delta.role,
        finish_reason=FinishReason.from_wire(finish) if finish is not None else None,
        raw_finish_reason=finish,
    )


def _from_llama_stack(chunk: LlamaStackChunk) -> ContentDelta:
    event = chunk.event
    role = "assistant" if event.event_type == "start" else None

    if event.delta.type == "tool_call":
        return ContentDelta(role=role, finish_reason=FinishReason.TOOL_CALLS, raw_finish_reason="tool_call")

    text = event.delta.text if event.delta.type == "text" else None

    if event.event_type == "complete":
        reason = event.stop_reason
        finish = LLAMA_STACK_STOP_REASONS.get(reason, FinishReason.UNKNOWN) if reason else FinishReason.STOP
        return ContentDelta(text_fragment=text, role=role, finish_reason=finish, raw_finish_reason=reason)

    return ContentDelta(text_fragment=text, role=role)
