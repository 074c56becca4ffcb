from __future__ import annotations

import logging
from typing import AsyncIterator

import httpx

from streamchat.endpoint import ProtocolVariant
from streamchat.frames import Framing, StreamFrame
from streamchat.request_builder import WireRequest
from streamchat.transports.base import TransportSession


logger = logging.getLogger(__name__)


class HttpxStreamTransport(TransportSession):
    """
    Raw Server-Sent-Events streaming over httpx.

    Works with any OpenAI-compatible server (vLLM, Ollama, llama.cpp, ...) and
    with Llama Stack's native inference API, since both stream `data:` lines.
    """

    name = "httpx"
    variants = frozenset({ProtocolVariant.OPENAI, ProtocolVariant.LLAMA_STACK})

    def __init__(
        self,
        *,
        connect_timeout: float = 10.0,
        read_timeout: float | None = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self._client = client or httpx.AsyncClient(timeout=self._timeout)

    async def open(self, request: WireRequest) -> AsyncIterator[StreamFrame]:
        async with self._client.stream(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body,
        ) as resp:
            if not resp.is_success:
                # read the body so the error classifier can see it
                await resp.aread()
                resp.raise_for_status()

            logger.debug(f"Streaming response from {request.url} (HTTP {resp.status_code})")

            try:
                async for line in resp.aiter_lines():
                    yield StreamFrame(text=line, framing=Framing.SSE)
            except httpx.TransportError as exc:
                logger.warning(f"Stream from {request.url} broke off: {type(exc).__name__} - {exc}")
                yield StreamFrame(text="", framing=Framing.SSE, error=exc)

    async def aclose(self) -> None:
        await self._client.aclose()
