from functools import lru_cache

from config import Config
from streamchat import ChatClient, create_transport
from streamchat.transports.base import TransportSession


@lru_cache()
def get_config() -> Config:
    """
    Get singleton Config instance.
    Uses lru_cache to ensure config is loaded once and reused.
    """
    return Config.from_env()


@lru_cache()
def get_transport() -> TransportSession:
    """
    Get the shared transport.

    Transports hold connection pools only, no per-request state, so every
    request's ChatClient can share one.
    """
    return create_transport(get_config())


def get_chat_client() -> ChatClient:
    """
    Get a ChatClient for one request.

    A client cancels its in-flight send when a new one starts, so clients are
    never shared between concurrent HTTP requests.
    """
    config = get_config()
    return ChatClient(
        get_transport(),
        endpoint=config.endpoint(),
        idle_timeout=config.idle_timeout,
    )
