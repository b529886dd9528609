"""Entry point - starts the FastAPI server."""

import asyncio
import signal

import structlog
import uvicorn

from crmdash.logconfig import configure_logging
from crmdash.rest.app import create_app
from crmdash.settings import get_settings

logger = structlog.get_logger()


async def main() -> None:
    settings = get_settings()
    configure_logging(settings)

    app = create_app(settings)
    config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=settings.rest_port,
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)

    logger.info("starting_service", rest_port=settings.rest_port, environment=settings.environment)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, setattr, server, "should_exit", True)

    await server.serve()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
