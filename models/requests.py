from pydantic import BaseModel, Field

from streamchat.endpoint import ProtocolVariant, ServerEndpoint


class EndpointSettings(BaseModel):
    """Server to send one request to, overriding the configured default."""

    base_url: str = Field(..., min_length=1, description="Server URL, e.g. http://localhost:11434")
    api_key: str | None = Field(None, description="Bearer token, if the server needs one")
    model: str | None = Field(None, description="Model name to run inference with")
    protocol: ProtocolVariant = Field(ProtocolVariant.OPENAI, description="Wire protocol of the server")

    def to_endpoint(self) -> ServerEndpoint:
        return ServerEndpoint(
            base_url=self.base_url,
            api_key=self.api_key,
            model=self.model,
            protocol_variant=self.protocol,
        )


class ChatRequest(BaseModel):
    """Request model for chat endpoint."""

    message: str = Field(..., max_length=32000, description="Prompt to send")
    endpoint: EndpointSettings | None = Field(
        None, description="Server to use instead of the configured default"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "message": "Hello, how are you?",
                "endpoint": {
                    "base_url": "http://localhost:11434",
                    "model": "llama3.2:latest",
                    "protocol": "openai",
                },
            }
        }
    }
