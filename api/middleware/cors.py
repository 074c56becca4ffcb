import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import get_config


logger = logging.getLogger(__name__)


def setup_cors(app: FastAPI) -> None:
    allowed_origins = get_config().allowed_origins

    if allowed_origins:
        logger.info(f"CORS enabled for origins: {allowed_origins}")
    else:
        logger.warning("No ALLOWED_ORIGINS configured. Browsers on other origins will be blocked.")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["X-API-Key", "Content-Type"],
        expose_headers=["X-Request-ID"],
    )
