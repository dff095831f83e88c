"""
YourStop entry point: builds the services and serves the HTTP API.
"""

import asyncio

import uvicorn
from loguru import logger

from yourstop.api.server import create_app
from yourstop.container import build_container
from yourstop.settings import load_settings


async def main() -> None:
    logger.info("Starting YourStop...")
    settings = load_settings()
    container = build_container(settings)

    try:
        logger.info("Starting cache sweeper...")
        container.sweeper.start()

        app = create_app(container, manage_lifecycle=False)
        config = uvicorn.Config(app, host=settings.api_host, port=settings.api_port)
        logger.info(f"YourStop API listening on {settings.api_host}:{settings.api_port}")
        await uvicorn.Server(config).serve()

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
    except Exception as e:
        logger.error(f"Error in main loop: {e}")
        raise
    finally:
        await container.close()
        logger.info("YourStop stopped")


if __name__ == "__main__":
    asyncio.run(main())
