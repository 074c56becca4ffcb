from fastapi import FastAPI
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from api.middleware.cors import setup_cors
from api.routes import chat, health
from api.routes.health import API_VERSION
from api.dependencies import get_config, get_transport


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logging.basicConfig(level=get_config().log_level)
    yield
    # Shutdown
    await get_transport().aclose()
    get_transport.cache_clear()


app = FastAPI(
    title="streamchat API",
    description="Streaming chat client for OpenAI-compatible and Llama Stack servers",
    version=API_VERSION,
    redoc_url="/redoc",
    lifespan=lifespan
)

setup_cors(app)

app.include_router(health.router)
app.include_router(chat.router)


@app.get("/", tags=["root"])
async def root():
    return JSONResponse(
        content={
            "name": "streamchat API",
            "version": API_VERSION,
            "docs": "/docs",
            "health": "/health",
            "endpoints": {
                "chat": "POST /api/v1/chat",
                "chat_stream": "POST /api/v1/chat?stream=true",
            }
        }
    )


if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(app,
                host="0.0.0.0",
                port=port,
                timeout_keep_alive=300,
                log_level=get_config().log_level.lower(),
                access_log=True
            )
