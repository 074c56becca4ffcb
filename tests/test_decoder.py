"""Tests for decoding stream chunks into content deltas."""

import json

import pytest

from streamchat.decoder import ContentDelta, FinishReason, decode_chunk
from streamchat.endpoint import ProtocolVariant
from streamchat.errors import ChatClientError, ErrorKind


def chunk_json(delta=None, finish_reason=None, **extra):
    payload = {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "choices": [{"delta": delta or {}, "finish_reason": finish_reason}],
    }
    payload.update(extra)
    return json.dumps(payload)


class TestOpenAIChunks:
    def test_text_delta(self):
        delta = decode_chunk(chunk_json({"content": "Hel", "role": "assistant"}))

        assert delta == ContentDelta(text_fragment="Hel", role="assistant")

    def test_unknown_fields_ignored(self):
        """
        Verify extra fields from real servers don't break decoding.

        Why: vLLM and Ollama add usage, created, model, logprobs, etc.
        """
        text = chunk_json(
            {"content": "hi", "tool_calls": None, "reasoning_content": None},
            created=1700000000,
            model="llama3.2",
            system_fingerprint="fp_ollama",
            usage=None,
        )

        assert decode_chunk(text).text_fragment == "hi"

    @pytest.mark.parametrize(
        "wire, expected",
        [
            ("stop", FinishReason.STOP),
            ("length", FinishReason.LENGTH),
            ("content_filter", FinishReason.CONTENT_FILTER),
            ("tool_calls", FinishReason.TOOL_CALLS),
            ("function_call", FinishReason.FUNCTION_CALL),
            ("eos_token", FinishReason.UNKNOWN),
        ],
    )
    def test_finish_reasons(self, wire, expected):
        delta = decode_chunk(chunk_json({}, finish_reason=wire))

        assert delta.finish_reason is expected
        assert delta.raw_finish_reason == wire

    def test_empty_choices(self):
        text = json.dumps({"id": "1", "object": "chat.completion.chunk", "choices": []})

        assert decode_chunk(text) == ContentDelta()

    def test_accepts_bytes(self):
        assert decode_chunk(chunk_json({"content": "é"}).encode("utf-8")).text_fragment == "é"


class TestDecodingErrors:
    @pytest.mark.parametrize(
        "text",
        [
            "{not json",
            '{"id": "1", "object": "x"}',
            '{"object": "x", "choices": []}',
            '{"id": "1", "object": "x", "choices": [{"finish_reason": null}]}',
            "[]",
            '"just a string"',
        ],
    )
    def test_malformed_or_incomplete(self, text):
        with pytest.raises(ChatClientError) as exc_info:
            decode_chunk(text)

        assert exc_info.value.error.kind is ErrorKind.DECODING_ERROR

    def test_invalid_utf8(self):
        with pytest.raises(ChatClientError) as exc_info:
            decode_chunk(b'{"id": "\xff"}')

        assert exc_info.value.error.kind is ErrorKind.DECODING_ERROR


class TestInlineErrors:
    def test_error_object_becomes_api_error(self):
        text = json.dumps({"error": {"message": "model not loaded", "type": "server_error", "code": "503"}})

        with pytest.raises(ChatClientError) as exc_info:
            decode_chunk(text)

        error = exc_info.value.error
        assert error.kind is ErrorKind.API_ERROR
        assert error.http_status == 503
        assert error.detail == "model not loaded"

    def test_error_without_known_code(self):
        text = json.dumps({"error": {"message": "context length exceeded", "code": "context_length"}})

        with pytest.raises(ChatClientError) as exc_info:
            decode_chunk(text)

        assert exc_info.value.error.http_status == -1

    def test_plain_string_error(self):
        with pytest.raises(ChatClientError) as exc_info:
            decode_chunk('{"error": "model \\"x\\" not found"}')

        assert exc_info.value.error.detail == 'model "x" not found'

    def test_null_error_field_is_not_an_error(self):
        text = chunk_json({"content": "ok"}, error=None)

        assert decode_chunk(text).text_fragment == "ok"


class TestLlamaStackChunks:
    def decode(self, event):
        return decode_chunk(json.dumps({"event": event}), ProtocolVariant.LLAMA_STACK)

    def test_start_event(self):
        delta = self.decode({"event_type": "start", "delta": {"type": "text", "text": ""}})

        assert delta.role == "assistant"
        assert not delta.text_fragment
        assert delta.finish_reason is None

    def test_progress_text(self):
        delta = self.decode({"event_type": "progress", "delta": {"type": "text", "text": "Hello"}})

        assert delta.text_fragment == "Hello"

    @pytest.mark.parametrize(
        "stop_reason, expected",
        [
            ("end_of_turn", FinishReason.STOP),
            ("end_of_message", FinishReason.STOP),
            (None, FinishReason.STOP),
            ("out_of_tokens", FinishReason.LENGTH),
            ("something_new", FinishReason.UNKNOWN),
        ],
    )
    def test_complete_event(self, stop_reason, expected):
        event = {"event_type": "complete", "delta": {"type": "text", "text": ""}}
        if stop_reason:
            event["stop_reason"] = stop_reason

        assert self.decode(event).finish_reason is expected

    def test_tool_call_delta(self):
        delta = self.decode(
            {"event_type": "progress", "delta": {"type": "tool_call", "tool_call": "get_weather()", "parse_status": "succeeded"}}
        )

        assert delta.finish_reason is FinishReason.TOOL_CALLS

    def test_image_delta_ignored(self):
        delta = self.decode({"event_type": "progress", "delta": {"type": "image", "image": "..."}})

        assert delta == ContentDelta()

    def test_openai_chunk_is_not_a_llama_stack_event(self):
        with pytest.raises(ChatClientError) as exc_info:
            decode_chunk(chunk_json({"content": "hi"}), ProtocolVariant.LLAMA_STACK)

        assert exc_info.value.error.kind is ErrorKind.DECODING_ERROR
