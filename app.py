from __future__ import annotations
import asyncio
import logging
import sys

from config import Config
from streamchat import ChatClient, create_chat_client


async def stream_to_terminal(client: ChatClient, prompt: str) -> int:
    """Print the answer as it streams in; returns a process exit code."""
    send = asyncio.create_task(client.send_message(prompt))

    printed = 0
    async for state in client.updates():
        text = state.accumulated_text
        if len(text) > printed:
            print(text[printed:], end="", flush=True)
            printed = len(text)

    final = await send
    print(flush=True)
    if final.error is not None:
        print(final.error, file=sys.stderr, flush=True)
        return 1
    return 0


async def main(argv: list[str]) -> int:
    if len(argv) < 2:
        print("usage: python app.py <prompt>", file=sys.stderr)
        return 2

    config = Config.from_env()
    logging.basicConfig(level=config.log_level)

    if config.endpoint() is None:
        print("CHAT_BASE_URL not set; configure a server in .env first.", flush=True)

    async with create_chat_client(config) as client:
        return await stream_to_terminal(client, " ".join(argv[1:]))


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv)))
