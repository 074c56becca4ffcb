from dataclasses import dataclass, field
from typing import Optional
import os
from dotenv import load_dotenv

from streamchat.endpoint import ProtocolVariant, ServerEndpoint


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}") from None


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class Config:
    base_url: Optional[str]
    api_key: Optional[str]
    model: Optional[str]
    protocol: ProtocolVariant = ProtocolVariant.OPENAI
    transport: str = "httpx"
    connect_timeout: float = 10.0
    idle_timeout: float = 60.0
    sdk_max_retries: int = 0
    server_api_key: str = ""
    allowed_origins: list[str] = field(default_factory=list)
    log_level: str = "INFO"

    def endpoint(self) -> Optional[ServerEndpoint]:
        """Default server for requests that don't name one."""
        if not self.base_url:
            return None
        return ServerEndpoint(
            base_url=self.base_url,
            api_key=self.api_key,
            model=self.model,
            protocol_variant=self.protocol,
            name="default",
        )

    @classmethod
    def from_env(cls) -> "Config":
        load_dotenv(override=True)

        try:
            protocol = ProtocolVariant.parse(os.getenv("CHAT_PROTOCOL"))
        except ValueError as exc:
            raise RuntimeError(str(exc)) from None

        # Parse allowed origins
        origins_str = os.getenv("ALLOWED_ORIGINS", "")
        allowed_origins = [o.strip() for o in origins_str.split(",") if o.strip()]

        return cls(
            base_url=os.getenv("CHAT_BASE_URL"),
            api_key=os.getenv("CHAT_API_KEY"),
            model=os.getenv("CHAT_MODEL"),
            protocol=protocol,
            transport=os.getenv("CHAT_TRANSPORT", "httpx"),
            connect_timeout=_float_env("CHAT_CONNECT_TIMEOUT", 10.0),
            idle_timeout=_float_env("CHAT_IDLE_TIMEOUT", 60.0),
            sdk_max_retries=_int_env("CHAT_SDK_MAX_RETRIES", 0),
            server_api_key=os.getenv("API_KEY", ""),
            allowed_origins=allowed_origins,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
