"""Run the httpapi demo application with uvicorn."""

import os

import uvicorn
from loguru import logger

from httpapi.api.main import app
from httpapi.core.config import get_settings
from httpapi.core.logging import setup_logging


def main() -> None:
    """Serve the demo app, reloading on code changes in debug mode."""
    settings = get_settings()
    setup_logging(settings)

    # Container platforms set PORT to the port to listen on
    port = int(os.environ.get("PORT", settings.api_port))
    logger.info("Starting Uvicorn on http://{}:{}", settings.api_host, port)

    # Reload needs an import string; log_config=None leaves loguru in charge
    uvicorn.run(
        "httpapi.api.main:app" if settings.debug else app,
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        log_config=None,
    )


if __name__ == "__main__":
    main()
