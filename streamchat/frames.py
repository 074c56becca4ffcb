"""
Stream frames and the classifier that routes them.

A frame is one unit handed over by a transport: an SSE line from a raw HTTP
stream, or a pre-parsed event re-serialised to JSON by an SDK transport.
Each frame is either noise (skipped), an error payload or a content payload
for the chunk decoder.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from streamchat.errors import KNOWN_API_ERROR_CODES


SSE_DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class Framing(str, Enum):
    SSE = "sse"
    EVENT = "event"


class FrameKind(str, Enum):
    SKIP = "skip"
    ERROR = "error"
    CONTENT = "content"


@dataclass(frozen=True)
class StreamFrame:
    text: str
    framing: Framing = Framing.SSE
    error: BaseException | None = None


@dataclass(frozen=True)
class ClassifiedFrame:
    kind: FrameKind
    payload: str = ""
    status: int | None = None
    error: BaseException | None = None


SKIP = ClassifiedFrame(FrameKind.SKIP)


def leading_status_code(text: str) -> int | None:
    """
    Return the frame's first token as a status code when it is a known HTTP error code.

    Only an exact ASCII integer matches; "404s" or "4xx" do not.
    """
    parts = text.split(maxsplit=1)
    if not parts:
        return None
    token = parts[0]
    if not (token.isascii() and token.isdigit()):
        return None
    code = int(token)
    return code if code in KNOWN_API_ERROR_CODES else None


def classify_frame(frame: StreamFrame) -> ClassifiedFrame:
    if frame.error is not None:
        return ClassifiedFrame(FrameKind.ERROR, frame.text, None, frame.error)

    # some transports hand HTTP error bodies over as ordinary stream content
    status = leading_status_code(frame.text)
    if status is not None:
        return ClassifiedFrame(FrameKind.ERROR, frame.text, status)

    if not frame.text.strip():
        return SKIP

    if frame.framing is Framing.SSE:
        if not frame.text.startswith(SSE_DATA_PREFIX):
            return SKIP
        payload = frame.text[len(SSE_DATA_PREFIX):].strip()
    else:
        payload = frame.text.strip()
        if payload.startswith(SSE_DATA_PREFIX.strip()):
            payload = payload[len(SSE_DATA_PREFIX.strip()):].strip()

    if not payload or payload == DONE_SENTINEL:
        return SKIP

    return ClassifiedFrame(FrameKind.CONTENT, payload)
