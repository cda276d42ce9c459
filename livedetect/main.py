"""
livedetect server entry point.

Usage:
    livedetect
    python -m livedetect.main
"""

import logging

import uvicorn

from livedetect.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def main() -> None:
    setup_logging(settings.server.log_level)
    logger = logging.getLogger("livedetect")

    settings.validate()

    logger.info("Starting livedetect on http://%s:%d", settings.server.host, settings.server.port)
    logger.info("API docs: http://localhost:%d/docs", settings.server.port)

    uvicorn.run(
        "livedetect.api.app:app",
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.server.log_level.lower(),
    )


if __name__ == "__main__":
    main()
