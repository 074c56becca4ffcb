from typing import Optional

from fastapi import Header, HTTPException, status

from api.dependencies import get_config


async def verify_api_key(x_api_key: Optional[str] = Header(None)) -> None:
    """
    Verify the X-API-Key header.

    The check is skipped when no API_KEY is configured, which is the usual
    setup for a local demo next to a local model server.
    """
    config = get_config()

    if not config.server_api_key:
        return

    if x_api_key != config.server_api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
