"""Service startup and main application entry point."""

import os

import uvicorn

from kapkurtar.api import create_app
from kapkurtar.config import load_settings
from kapkurtar.logging import get_logger, setup_logging


def main() -> None:
    """Run the HTTP API."""
    settings = load_settings()
    setup_logging(settings.log_level)
    logger = get_logger(__name__)

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    logger.info("starting_server", host=host, port=port, environment=settings.environment)

    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
