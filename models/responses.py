from pydantic import BaseModel, Field

from streamchat.errors import ClassifiedError
from streamchat.state import ResponseState


class ErrorDetail(BaseModel):
    kind: str = Field(..., description="Error category")
    http_status: int | None = Field(None, description="HTTP status, -1 for transport failures")
    detail: str = Field(..., description="Human-readable description")

    @classmethod
    def from_error(cls, error: ClassifiedError | None) -> "ErrorDetail | None":
        if error is None:
            return None
        return cls(**error.to_dict())


class ChatResponse(BaseModel):
    """Response model for chat endpoint."""

    text: str = Field(..., description="Accumulated answer, possibly partial")
    phase: str = Field(..., description="Final phase: completed or failed")
    error: ErrorDetail | None = Field(None, description="Why the answer failed, if it did")

    @classmethod
    def from_state(cls, state: ResponseState) -> "ChatResponse":
        return cls(
            text=state.accumulated_text,
            phase=state.phase.value,
            error=ErrorDetail.from_error(state.error),
        )


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")


# Streaming response models

class StreamEvent(BaseModel):
    """
    SSE event model for streaming chat responses.

    Format: {"delta": <string|null>, "metadata": <object|null>}
    """
    delta: str | None = Field(None, description="Text content to append")
    metadata: dict | None = Field(None, description="Event metadata")

    def encode(self) -> bytes:
        return f"data: {self.model_dump_json()}\n\n".encode()
