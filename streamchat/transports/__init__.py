from streamchat.transports.base import TransportSession
from streamchat.transports.httpx_stream import HttpxStreamTransport
from streamchat.transports.openai_sdk import OpenAISDKTransport

__all__ = ["HttpxStreamTransport", "OpenAISDKTransport", "TransportSession"]
