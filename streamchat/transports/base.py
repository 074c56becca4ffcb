from __future__ import annotations

from typing import AsyncIterator, Protocol, runtime_checkable

from streamchat.endpoint import ProtocolVariant
from streamchat.frames import StreamFrame
from streamchat.request_builder import WireRequest


@runtime_checkable
class TransportSession(Protocol):
    """
    Boundary between the chat client and whatever library moves the bytes.

    Implementations can stream raw SSE lines over an HTTP client, or wrap a
    vendor SDK's own streaming primitive and hand over pre-parsed events.
    """

    name: str
    variants: frozenset[ProtocolVariant]

    def open(self, request: WireRequest) -> AsyncIterator[StreamFrame]:
        """
        Send the request and yield frames as they arrive.

        Connection failures and non-2xx answers are raised as the library's
        own exceptions before the first frame. A failure after streaming has
        started is reported as a last frame carrying `error`. Closing the
        iterator must release the underlying connection.
        """
        ...

    async def aclose(self) -> None:
        """Release pooled connections."""
        ...
