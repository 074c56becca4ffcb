from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from streamchat.decoder import decode_chunk
from streamchat.endpoint import ProtocolVariant, ServerEndpoint
from streamchat.errors import (
    ChatClientError,
    cancelled,
    classify_error_frame,
    classify_exception,
    encoding_error,
    invalid_url,
)
from streamchat.frames import FrameKind, StreamFrame, classify_frame
from streamchat.request_builder import build_request
from streamchat.state import ResponseAccumulator, ResponseState
from streamchat.transports.base import TransportSession


logger = logging.getLogger(__name__)


DEFAULT_IDLE_TIMEOUT_S = 60.0


async def frames_with_idle_timeout(
    frames: AsyncIterator[StreamFrame],
    idle_timeout: float | None,
) -> AsyncIterator[StreamFrame]:
    """Re-yield frames, raising TimeoutError when none arrives for idle_timeout seconds."""
    while True:
        try:
            if idle_timeout is None:
                frame = await anext(frames)
            else:
                frame = await asyncio.wait_for(anext(frames), idle_timeout)
        except StopAsyncIteration:
            return
        yield frame


class ChatClient:
    """
    Sends prompts to one inference server at a time and exposes the live answer.

    One send runs as one asyncio task. Starting a new send while another is
    still streaming cancels the older one; set_endpoint() does the same.
    Progress is observed through current_response_state() or updates().
    """

    def __init__(
        self,
        transport: TransportSession,
        *,
        endpoint: ServerEndpoint | None = None,
        idle_timeout: float | None = DEFAULT_IDLE_TIMEOUT_S,
    ) -> None:
        self.transport = transport
        self.idle_timeout = idle_timeout
        self._endpoint = endpoint
        self._accumulator = ResponseAccumulator()
        self._task: asyncio.Task | None = None

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @property
    def endpoint(self) -> ServerEndpoint | None:
        return self._endpoint

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def set_endpoint(self, endpoint: ServerEndpoint) -> None:
        """Switch servers: drops any in-flight answer and resets the response state."""
        self._endpoint = endpoint
        if self.busy:
            self._task.cancel()
            # the cancelled task only runs its handler after the old state is retired
            self._accumulator.fail(cancelled())
            self._replace_accumulator()
        else:
            self._accumulator.reset()
        logger.info(f"Endpoint set to {endpoint!r}")

    def current_response_state(self) -> ResponseState:
        return self._accumulator.snapshot()

    async def updates(self) -> AsyncIterator[ResponseState]:
        """
        Follow the live response state.

        Yields the current snapshot and then one per change. Keeps following
        when a newer send replaces the current one, and stops once the answer
        it is following reaches a terminal state.
        """
        while True:
            accumulator = self._accumulator
            async for state in accumulator.updates():
                yield state
            if not accumulator.retired:
                return

    async def send_message(self, prompt: str) -> ResponseState:
        """
        Send a prompt and stream the answer into the response state.

        Failures never escape: they are classified and recorded next to the
        partial answer. Returns the final snapshot of this send.
        """
        while self.busy:
            await self.cancel()
        accumulator = self._replace_accumulator()

        task = asyncio.create_task(self._run(self._endpoint, prompt, accumulator))
        self._task = task
        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            # superseded by a newer send, set_endpoint() or cancel()
        finally:
            if self._task is task:
                self._task = None

        return accumulator.snapshot()

    async def cancel(self) -> None:
        """Cancel the in-flight send, if any, and wait until its stream is released."""
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise

    async def aclose(self) -> None:
        await self.cancel()
        await self.transport.aclose()

    def _replace_accumulator(self) -> ResponseAccumulator:
        self._accumulator.retire()
        self._accumulator = ResponseAccumulator()
        return self._accumulator

    async def _run(
        self,
        endpoint: ServerEndpoint | None,
        prompt: str,
        accumulator: ResponseAccumulator,
    ) -> None:
        accumulator.begin_building()
        try:
            if endpoint is None:
                raise invalid_url("Server not set. Message could not be sent")

            request = build_request(endpoint, prompt)
            if request.protocol_variant not in self.transport.variants:
                raise encoding_error(
                    f"Transport {self.transport.name!r} cannot send "
                    f"{request.protocol_variant.value} requests"
                )

            logger.info(f"Sending chat request to {request.url} (model={request.model})")
            accumulator.begin_streaming()

            async with (
                aclosing(self.transport.open(request)) as frames,
                aclosing(frames_with_idle_timeout(frames, self.idle_timeout)) as timed_frames,
            ):
                async for frame in timed_frames:
                    self._handle_frame(frame, request.protocol_variant, accumulator)
                    if accumulator.terminal:
                        break

            accumulator.complete()

        except asyncio.CancelledError:
            logger.info("Chat request cancelled")
            accumulator.fail(cancelled())
            raise
        except Exception as exc:
            error = classify_exception(exc)
            logger.warning(f"Chat request failed: {error}")
            accumulator.fail(error)
        else:
            state = accumulator.snapshot()
            if state.error is None:
                logger.info(f"Chat response finished ({len(state.accumulated_text)} chars)")
            else:
                logger.warning(f"Chat response failed: {state.error}")

    def _handle_frame(
        self,
        frame: StreamFrame,
        variant: ProtocolVariant,
        accumulator: ResponseAccumulator,
    ) -> None:
        classified = classify_frame(frame)

        if classified.kind is FrameKind.SKIP:
            return

        if classified.kind is FrameKind.ERROR:
            raise ChatClientError(
                classify_error_frame(classified.payload, classified.status, classified.error)
            )

        logger.debug(f"Decoding {len(classified.payload)} byte chunk")
        accumulator.apply(decode_chunk(classified.payload, variant))
