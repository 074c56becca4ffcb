from __future__ import annotations

from streamchat.client import ChatClient
from streamchat.transports.base import TransportSession
from streamchat.transports.httpx_stream import HttpxStreamTransport
from streamchat.transports.openai_sdk import OpenAISDKTransport


def create_transport(config) -> TransportSession:
    transport = (getattr(config, "transport", "httpx") or "httpx").lower().strip()

    if transport in {"httpx", "sse", "raw"}:
        return HttpxStreamTransport(
            connect_timeout=config.connect_timeout,
            read_timeout=config.idle_timeout,
        )

    if transport in {"openai", "openai_sdk", "openai-sdk", "sdk"}:
        return OpenAISDKTransport(
            timeout_s=config.idle_timeout,
            max_retries=config.sdk_max_retries,
        )

    raise ValueError(
        f"Unsupported CHAT_TRANSPORT={transport!r}. "
        "Supported: httpx (raw SSE streaming), openai_sdk (official OpenAI SDK)."
    )


def create_chat_client(config, transport: TransportSession | None = None) -> ChatClient:
    return ChatClient(
        transport or create_transport(config),
        endpoint=config.endpoint(),
        idle_timeout=config.idle_timeout,
    )
