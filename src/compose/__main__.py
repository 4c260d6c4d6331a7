"""Entry point for the compose content server."""

import contextlib
import sys

import structlog
import uvicorn

from compose.app import create_app
from compose.config import Settings
from compose.logging import configure_logging

logger = structlog.get_logger()


def serve(settings: Settings) -> None:
    """Run uvicorn until interrupted.

    uvicorn handles SIGTERM/SIGINT and runs the application lifespan,
    including the first-start CDN pull, before accepting requests.

    Args:
        settings: Server configuration.
    """
    app = create_app(settings)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)
    logger.info(
        "compose_serving",
        url=f"http://{settings.host}:{settings.port}",
        content_root=str(settings.content_root),
    )
    server.run()


def main() -> None:
    """Entry point for python -m compose."""
    settings = Settings()
    configure_logging(debug=settings.debug)

    with contextlib.suppress(KeyboardInterrupt):
        serve(settings)

    sys.exit(0)


if __name__ == "__main__":
    main()
