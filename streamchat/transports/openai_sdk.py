from __future__ import annotations

import logging
from typing import AsyncIterator

import httpx
from openai import APIError, AsyncOpenAI

from streamchat.endpoint import ProtocolVariant
from streamchat.frames import Framing, StreamFrame
from streamchat.request_builder import WireRequest
from streamchat.transports.base import TransportSession


logger = logging.getLogger(__name__)

COMPLETIONS_SUFFIX = "/chat/completions"


def sdk_base_url(url: str) -> str:
    """The SDK appends /chat/completions itself, so strip it from a full request URL."""
    parsed = httpx.URL(url)
    path = parsed.path.rstrip("/")
    if path.endswith(COMPLETIONS_SUFFIX):
        path = path[: -len(COMPLETIONS_SUFFIX)]
    return f"{parsed.scheme}://{parsed.netloc.decode('ascii')}{path}"


class OpenAISDKTransport(TransportSession):
    """
    Streaming through the official OpenAI SDK.

    Also works with OpenAI-compatible APIs by pointing base_url at them:
    - vLLM (http://localhost:8000/v1)
    - Ollama (http://localhost:11434/v1)
    Chunks arrive pre-parsed; each is re-serialised into an EVENT frame so the
    same decoder handles both transports.
    """

    name = "openai_sdk"
    variants = frozenset({ProtocolVariant.OPENAI})

    def __init__(
        self,
        *,
        timeout_s: float = 60.0,
        max_retries: int = 0,
    ) -> None:
        self._timeout = timeout_s
        self._max_retries = max_retries
        self._clients: dict[tuple[str, str], AsyncOpenAI] = {}

    def _client_for(self, base_url: str, api_key: str) -> AsyncOpenAI:
        key = (base_url, api_key)
        client = self._clients.get(key)
        if client is None:
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=self._timeout,
                max_retries=self._max_retries,
            )
            self._clients[key] = client
        return client

    async def open(self, request: WireRequest) -> AsyncIterator[StreamFrame]:
        client = self._client_for(sdk_base_url(request.url), request.api_key)
        stream = await client.chat.completions.create(
            model=request.model,
            messages=request.payload["messages"],
            stream=True,
        )

        try:
            async for chunk in stream:
                yield StreamFrame(text=chunk.model_dump_json(), framing=Framing.EVENT)
        except (APIError, httpx.TransportError) as exc:
            logger.warning(f"SDK stream broke off: {type(exc).__name__} - {exc}")
            yield StreamFrame(text="", framing=Framing.EVENT, error=exc)
        finally:
            await stream.close()

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
