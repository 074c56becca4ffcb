from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ProtocolVariant(str, Enum):
    OPENAI = "openai"
    LLAMA_STACK = "llama_stack"

    @classmethod
    def parse(cls, value: str | None) -> "ProtocolVariant":
        name = (value or "openai").lower().strip()

        if name in {"openai", "openai-compatible", "openai_compatible"}:
            return cls.OPENAI

        if name in {"llama_stack", "llama-stack", "llamastack"}:
            return cls.LLAMA_STACK

        raise ValueError(
            f"Unsupported protocol variant {value!r}. "
            "Supported: openai (OpenAI-compatible servers such as vLLM/Ollama), llama_stack."
        )


@dataclass(frozen=True)
class ServerEndpoint:
    """
    Connection descriptor for one inference server.

    Created and edited by whoever owns the server list; the client only reads it.
    """

    base_url: str
    api_key: str | None = None
    model: str | None = None
    protocol_variant: ProtocolVariant = ProtocolVariant.OPENAI
    name: str | None = None

    def __repr__(self) -> str:
        # api_key stays out of logs
        return (
            f"ServerEndpoint(name={self.name!r}, base_url={self.base_url!r}, "
            f"model={self.model!r}, protocol_variant={self.protocol_variant.value!r})"
        )
