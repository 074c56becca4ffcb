from streamchat.client import ChatClient
from streamchat.endpoint import ProtocolVariant, ServerEndpoint
from streamchat.errors import ClassifiedError, ErrorKind
from streamchat.factory import create_chat_client, create_transport
from streamchat.state import Phase, ResponseState

__all__ = [
    "ChatClient",
    "ClassifiedError",
    "ErrorKind",
    "Phase",
    "ProtocolVariant",
    "ResponseState",
    "ServerEndpoint",
    "create_chat_client",
    "create_transport",
]
