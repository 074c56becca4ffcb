from __future__ import annotations

import json
from dataclasses import dataclass, field

import httpx

from streamchat.endpoint import ProtocolVariant, ServerEndpoint
from streamchat.errors import encoding_error, invalid_url, no_model_name
from streamchat.wire import LlamaStackChatBody, OpenAIChatBody, WireMessage


DEFAULT_PATHS: dict[ProtocolVariant, str] = {
    ProtocolVariant.OPENAI: "/v1/chat/completions",
    ProtocolVariant.LLAMA_STACK: "/v1/inference/chat-completion",
}


@dataclass(frozen=True)
class WireRequest:
    url: str
    headers: dict[str, str]
    body: bytes
    payload: dict = field(repr=False)
    protocol_variant: ProtocolVariant
    model: str
    api_key: str = field(default="", repr=False)
    method: str = "POST"


def resolve_url(endpoint: ServerEndpoint) -> httpx.URL:
    """
    Turn the endpoint's base URL into the URL the request is posted to.

    Raises ChatClientError(INVALID_URL) when the URL does not parse or lacks
    a scheme or host. An empty path gets the protocol's default path.
    """
    raw = (endpoint.base_url or "").strip()
    try:
        url = httpx.URL(raw)
    except (httpx.InvalidURL, TypeError, ValueError):
        raise invalid_url(f"Invalid server URL: {raw or 'No URL specified'}") from None

    if not url.scheme or not url.host:
        raise invalid_url(f"Invalid server URL: {raw or 'No URL specified'}")

    if url.path in ("", "/"):
        url = url.copy_with(path=DEFAULT_PATHS[endpoint.protocol_variant])

    return url


def build_request(endpoint: ServerEndpoint, prompt: str) -> WireRequest:
    """Validate the endpoint and prompt and produce a ready-to-send streaming request."""
    url = resolve_url(endpoint)

    model = (endpoint.model or "").strip()
    if not model:
        raise no_model_name()

    messages = [WireMessage(role="user", content=prompt)]
    if endpoint.protocol_variant is ProtocolVariant.LLAMA_STACK:
        payload = LlamaStackChatBody(model_id=model, messages=messages).model_dump()
    else:
        payload = OpenAIChatBody(model=model, messages=messages).model_dump()

    try:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise encoding_error(f"Could not encode the request body: {exc}") from exc

    api_key = endpoint.api_key or ""
    headers = {
        # HTTP trims trailing whitespace from header values
        "Authorization": f"Bearer {api_key}".rstrip(),
        "Content-Type": "application/json",
        "Accept": "text/event-stream",
    }

    return WireRequest(
        url=str(url),
        headers=headers,
        body=body,
        payload=payload,
        protocol_variant=endpoint.protocol_variant,
        model=model,
        api_key=api_key,
    )
