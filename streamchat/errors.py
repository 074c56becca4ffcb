"""
Error taxonomy for chat streaming and the classifier that maps every failure into it.

Sources of failure:
1. Request building (bad URL, missing model, unencodable prompt)
2. Transport (connect, DNS, timeout, dropped connection, cancellation)
3. HTTP status (non-2xx answer, with or without a structured error body)
4. In-band (error payloads inside the stream, adverse finish reasons)
5. Decoding (malformed or unexpected JSON)

Everything ends up as a ClassifiedError. Nothing here raises.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum

import httpx
from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError
from pydantic import ValidationError

from streamchat.wire import ErrorEnvelope


logger = logging.getLogger(__name__)


TRANSPORT_STATUS = -1

# HTTP error codes OpenAI-compatible servers document for their error bodies.
KNOWN_API_ERROR_CODES = frozenset({400, 401, 403, 404, 429, 500, 503})

STATUS_DESCRIPTIONS: dict[int, str] = {
    400: "Bad request: check the model name",
    401: "Invalid API key",
    403: "Access to the model or server is forbidden",
    404: "Not found: check the server URL and model name",
    429: "Rate limit or quota exceeded",
    500: "The server had an error while processing the request",
    503: "The engine is currently overloaded, please try again later",
}

TIMED_OUT = "The request timed out"
CANCELLED = "The request was cancelled"


class ErrorKind(str, Enum):
    INVALID_URL = "invalid_url"
    NO_MODEL_NAME = "no_model_name"
    HTTP_ERROR = "http_error"
    DECODING_ERROR = "decoding_error"
    ENCODING_ERROR = "encoding_error"
    API_ERROR = "api_error"


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    http_status: int | None = None
    detail: str = ""

    def __str__(self) -> str:
        if self.kind is ErrorKind.API_ERROR:
            return f"API Error: <{self.http_status}>, {self.detail}"
        if self.kind is ErrorKind.HTTP_ERROR:
            return f"HTTP Error: <{self.http_status}>, {self.detail}"
        return f"Error: {self.detail}"

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "http_status": self.http_status, "detail": self.detail}


class ChatClientError(Exception):
    """Raised inside the client to carry a ClassifiedError to the send boundary."""

    def __init__(self, error: ClassifiedError):
        super().__init__(str(error))
        self.error = error


def invalid_url(detail: str) -> ChatClientError:
    return ChatClientError(ClassifiedError(ErrorKind.INVALID_URL, None, detail))


def no_model_name(detail: str = "No model name configured for the server") -> ChatClientError:
    return ChatClientError(ClassifiedError(ErrorKind.NO_MODEL_NAME, None, detail))


def encoding_error(detail: str) -> ChatClientError:
    return ChatClientError(ClassifiedError(ErrorKind.ENCODING_ERROR, None, detail))


def decoding_error(detail: str) -> ChatClientError:
    return ChatClientError(ClassifiedError(ErrorKind.DECODING_ERROR, None, detail))


def api_error(status: int, detail: str) -> ChatClientError:
    return ChatClientError(ClassifiedError(ErrorKind.API_ERROR, status, detail))


def cancelled() -> ClassifiedError:
    return ClassifiedError(ErrorKind.HTTP_ERROR, TRANSPORT_STATUS, CANCELLED)


# Ordered most specific first: isinstance() picks the first match.
TRANSPORT_ERRORS: dict[type, tuple[ErrorKind, str]] = {
    httpx.InvalidURL: (ErrorKind.INVALID_URL, "Invalid server URL"),
    httpx.UnsupportedProtocol: (ErrorKind.INVALID_URL, "Unsupported URL scheme"),
    httpx.TimeoutException: (ErrorKind.HTTP_ERROR, TIMED_OUT),
    APITimeoutError: (ErrorKind.HTTP_ERROR, TIMED_OUT),
    TimeoutError: (ErrorKind.HTTP_ERROR, TIMED_OUT),
    httpx.ConnectError: (
        ErrorKind.HTTP_ERROR,
        "Could not connect to the server. Please check the address.",
    ),
    APIConnectionError: (ErrorKind.HTTP_ERROR, "Could not connect to the server."),
    httpx.RemoteProtocolError: (
        ErrorKind.HTTP_ERROR,
        "The server closed the connection unexpectedly.",
    ),
    httpx.NetworkError: (ErrorKind.HTTP_ERROR, "The network connection was lost."),
    httpx.TransportError: (ErrorKind.HTTP_ERROR, "An unexpected network error occurred."),
    asyncio.CancelledError: (ErrorKind.HTTP_ERROR, CANCELLED),
}


def classify_exception(error: BaseException) -> ClassifiedError:
    """Map any exception raised while talking to a server to a ClassifiedError."""
    if isinstance(error, ChatClientError):
        return error.error

    if isinstance(error, httpx.HTTPStatusError):
        return classify_http_status(error.response.status_code, _response_text(error.response))

    if isinstance(error, APIStatusError):
        return classify_http_status(error.status_code, _sdk_error_body(error))

    if isinstance(error, APIError) and not isinstance(error, APIConnectionError):
        return _classify_sdk_stream_error(error)

    for error_type, (kind, detail) in TRANSPORT_ERRORS.items():
        if isinstance(error, error_type):
            status = None if kind is ErrorKind.INVALID_URL else TRANSPORT_STATUS
            logger.error(f"Transport {kind.value} error: {type(error).__name__} - {error}")
            return ClassifiedError(kind, status, detail)

    logger.error(f"Unexpected error while streaming: {type(error).__name__} - {error}")
    return ClassifiedError(
        ErrorKind.HTTP_ERROR,
        TRANSPORT_STATUS,
        f"An unexpected error occurred: {error}",
    )


def classify_http_status(status: int, body: str) -> ClassifiedError:
    """
    Classify a non-2xx answer.

    Known API error codes with a structured {"error": {...}} body report the
    server's message. Anything else reports the raw body, or a stock
    description when the body is empty.
    """
    message = extract_error_message(body) if status in KNOWN_API_ERROR_CODES else None
    if message:
        detail = message
    else:
        detail = body.strip() or STATUS_DESCRIPTIONS.get(status, f"Unexpected HTTP status {status}")

    logger.error(f"LLM server returned HTTP {status}: {detail}")
    return ClassifiedError(ErrorKind.API_ERROR, status, detail)


def classify_error_frame(text: str, status: int | None, error: BaseException | None) -> ClassifiedError:
    """Classify an error payload found inside the stream."""
    if error is not None:
        return classify_exception(error)

    body = text.strip()
    if status is not None and body.startswith(str(status)):
        body = body[len(str(status)):].strip()
    status = status if status is not None else TRANSPORT_STATUS
    detail = extract_error_message(body) or body or STATUS_DESCRIPTIONS.get(status, "")
    logger.error(f"In-band error frame with status {status}: {detail}")
    return ClassifiedError(ErrorKind.API_ERROR, status, detail)


def extract_error_message(body: str) -> str | None:
    """
    Find the message of a structured error body.

    The body may be a single JSON document or SSE-style lines; the first
    line that parses as an error envelope wins.
    """
    candidates = [body] + body.splitlines()
    for candidate in candidates:
        line = candidate.strip()
        if line.startswith("data:"):
            line = line[len("data:"):].strip()
        if "error" not in line:
            continue
        envelope = parse_error_envelope(line)
        if envelope is not None:
            return envelope.message or line
    return None


def parse_error_envelope(text: str) -> ErrorEnvelope | None:
    try:
        return ErrorEnvelope.model_validate_json(text)
    except ValidationError:
        return None


def status_from_error_code(code: str | int | None) -> int:
    """Use an error's code as the status when it is a known HTTP error code."""
    if isinstance(code, int):
        value = code
    elif isinstance(code, str) and code.isascii() and code.isdigit():
        value = int(code)
    else:
        return TRANSPORT_STATUS
    return value if value in KNOWN_API_ERROR_CODES else TRANSPORT_STATUS


def _classify_sdk_stream_error(error: APIError) -> ClassifiedError:
    # the SDK raises a bare APIError for {"error": {...}} events inside a stream
    body = error.body if isinstance(error.body, dict) else {}
    status = status_from_error_code(body.get("code"))
    detail = error.message or STATUS_DESCRIPTIONS.get(status, "")
    logger.error(f"In-band error event with status {status}: {detail}")
    return ClassifiedError(ErrorKind.API_ERROR, status, detail)


def _response_text(response: httpx.Response) -> str:
    try:
        return response.text
    except httpx.ResponseNotRead:
        return ""


def _sdk_error_body(error: APIStatusError) -> str:
    # the SDK unwraps {"error": {...}} bodies before storing them
    body = error.body
    if isinstance(body, dict):
        if "error" not in body and "message" in body:
            body = {"error": body}
        return json.dumps(body)
    if isinstance(body, str):
        return body
    return error.message
