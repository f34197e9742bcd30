"""Minimal demonstration of the gateway service."""

import asyncio

from gateway_core import GatewayService, load_settings
from gateway_core.infrastructure.logging.logger import setup_logger


async def main() -> None:
    settings = load_settings()
    setup_logger(settings)
    service = GatewayService(settings)
    question = "Explain server-sent events in two sentences."
    print("User:", question)
    print("Assistant: ", end="", flush=True)
    result = await service.send_chat_stream(
        question,
        on_chunk=lambda fragment: print(fragment, end="", flush=True),
        on_complete=lambda: print(),
    )
    if not result["success"]:
        print("Error:", result["error"])
    diagram = await service.generate_diagram("a login flow with retry on wrong password")
    print(diagram.get("diagram") or diagram.get("error"))


if __name__ == "__main__":
    asyncio.run(main())
