"""
Live response state for one send operation.

ResponseAccumulator is a single-writer, many-reader cell: the client's send
task is the only writer, any number of readers may take snapshots or follow
updates() while the answer streams in.

Phases:
    idle -> building -> streaming -> completed | failed

completed and failed are terminal. The first terminal transition wins, and
writes after it (or after retire()) are ignored.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum

from streamchat.decoder import ContentDelta, FinishReason
from streamchat.errors import TRANSPORT_STATUS, ClassifiedError, ErrorKind


logger = logging.getLogger(__name__)


FINISH_REASON_MESSAGES: dict[FinishReason, str] = {
    FinishReason.LENGTH: (
        "The maximum number of tokens specified in the request was reached, "
        "and the model did not generate any more text."
    ),
    FinishReason.CONTENT_FILTER: "Model omitted content due to a flag in a content filter.",
    FinishReason.TOOL_CALLS: "Model called a tool, but tool calls are not supported.",
    FinishReason.FUNCTION_CALL: "Model called a function, but function calls are not supported.",
}


class Phase(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_PHASES = frozenset({Phase.COMPLETED, Phase.FAILED})


@dataclass(frozen=True)
class ResponseState:
    accumulated_text: str = ""
    terminal: bool = False
    error: ClassifiedError | None = None
    phase: Phase = Phase.IDLE

    def render(self) -> str:
        """Partial answer followed by the failure reason, if any."""
        if self.error is None:
            return self.accumulated_text
        if not self.accumulated_text:
            return str(self.error)
        return f"{self.accumulated_text}\n\n{self.error}"


def classify_finish_reason(delta: ContentDelta) -> ClassifiedError | None:
    """None for a normal stop, an API_ERROR for every other finish reason."""
    reason = delta.finish_reason
    if reason is None or reason is FinishReason.STOP:
        return None

    detail = FINISH_REASON_MESSAGES.get(reason)
    if detail is None:
        detail = f"Received an unknown finish reason from the API: {delta.raw_finish_reason}"
    return ClassifiedError(ErrorKind.API_ERROR, TRANSPORT_STATUS, detail)


class ResponseAccumulator:
    def __init__(self) -> None:
        self._retired = False
        self._version = 0
        self._changed = asyncio.Event()
        self.reset()

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def terminal(self) -> bool:
        return self._phase in TERMINAL_PHASES

    @property
    def retired(self) -> bool:
        return self._retired

    def snapshot(self) -> ResponseState:
        return ResponseState(
            accumulated_text=self._text,
            terminal=self.terminal,
            error=self._error,
            phase=self._phase,
        )

    def reset(self) -> None:
        self._text = ""
        self._error: ClassifiedError | None = None
        self._phase = Phase.IDLE
        self._notify()

    def begin_building(self) -> None:
        self._transition(Phase.BUILDING)

    def begin_streaming(self) -> None:
        self._transition(Phase.STREAMING)

    def apply(self, delta: ContentDelta) -> None:
        if not self._writable():
            return

        if delta.finish_reason is not None:
            error = classify_finish_reason(delta)
            if error is None:
                self.complete()
            else:
                logger.warning(f"Generation ended with finish reason {delta.raw_finish_reason!r}")
                self.fail(error)
            return

        if delta.text_fragment:
            self._text += delta.text_fragment
            self._notify()

    def complete(self) -> None:
        self._transition(Phase.COMPLETED)

    def fail(self, error: ClassifiedError) -> None:
        if not self._writable():
            logger.debug(f"Ignoring late error on finished response: {error}")
            return
        self._error = error
        self._transition(Phase.FAILED)

    def retire(self) -> None:
        """Detach this accumulator from its client; readers stop following it."""
        self._retired = True
        self._notify()

    async def updates(self) -> AsyncIterator[ResponseState]:
        """Yield a snapshot now and after every change, until terminal or retired."""
        seen = -1
        while True:
            changed = self._changed
            if seen != self._version:
                seen = self._version
                state = self.snapshot()
                yield state
                if state.terminal or self._retired:
                    return
                continue
            if self._retired:
                return
            await changed.wait()

    def _writable(self) -> bool:
        return not self._retired and not self.terminal

    def _transition(self, phase: Phase) -> None:
        if not self._writable():
            return
        self._phase = phase
        self._notify()

    def _notify(self) -> None:
        self._version += 1
        self._changed.set()
        self._changed = asyncio.Event()
