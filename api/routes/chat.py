from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import StreamingResponse
from typing import Annotated, AsyncGenerator
import asyncio
import logging
import uuid

from models.requests import ChatRequest
from models.responses import ChatResponse, ErrorDetail, StreamEvent
from api.middleware.auth import verify_api_key
from api.dependencies import get_chat_client
from streamchat import ChatClient


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["chat"])

SSE_KICKSTART_BUFFER_SIZE = 2048


@router.post("/chat", dependencies=[Depends(verify_api_key)], response_model=ChatResponse)
async def chat_endpoint(
    chat_request: ChatRequest,
    client: Annotated[ChatClient, Depends(get_chat_client)],
    response: Response,
    stream: bool = Query(False, description="Enable streaming response (SSE)"),
):
    """
    Send one prompt to an inference server.

    - Without stream parameter: waits for the whole answer and returns it
      with the final phase and error, if any
    - With stream=true: returns an SSE stream of text deltas followed by a
      final event whose metadata carries done/phase/error

    A failed answer is not an HTTP error: partial text and the classified
    error are returned together.
    """
    request_id = str(uuid.uuid4())

    if chat_request.endpoint is not None:
        client.set_endpoint(chat_request.endpoint.to_endpoint())

    if stream:
        return StreamingResponse(
            _stream_events(client, chat_request.message, request_id),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache, no-transform",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
                "X-Request-ID": request_id,
            },
        )

    state = await client.send_message(chat_request.message)
    logger.info(f"Request {request_id} finished with phase {state.phase.value}")
    response.headers["X-Request-ID"] = request_id
    return ChatResponse.from_state(state)


async def _stream_events(
    client: ChatClient,
    message: str,
    request_id: str,
) -> AsyncGenerator[bytes, None]:
    """
    Relay the client's live state as SSE events.

    Each event carries only the text added since the previous one.
    """
    yield (":" + (" " * SSE_KICKSTART_BUFFER_SIZE) + "\n\n").encode("utf-8")

    send = asyncio.create_task(client.send_message(message))
    sent = 0
    try:
        async for state in client.updates():
            text = state.accumulated_text
            if len(text) > sent:
                yield StreamEvent(delta=text[sent:]).encode()
                sent = len(text)

        final = await send
        error = ErrorDetail.from_error(final.error)
        logger.info(f"Stream {request_id} finished with phase {final.phase.value}")
        yield StreamEvent(
            metadata={
                "done": True,
                "phase": final.phase.value,
                "error": error.model_dump() if error else None,
            }
        ).encode()
    finally:
        if not send.done():
            logger.info(f"Stream {request_id} closed by the caller, cancelling")
            send.cancel()
            try:
                # wait for the transport stream to be released
                await send
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
