"""Process entry points: logging setup and the HTTP server."""

import logging
import sys

import structlog

from taskweave.config import settings


def configure_logging(level: str | None = None) -> None:
    """Configure structured logging."""
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)

    # Quiet chatty libraries unless we are debugging
    if log_level > logging.DEBUG:
        for noisy in ("sqlalchemy.engine", "asyncio", "httpx"):
            logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer()
            if sys.stderr.isatty()
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def run_server(host: str | None = None, port: int | None = None) -> None:
    """Run the HTTP API.

    Args:
        host: Host to bind to (defaults to settings.server_host)
        port: Port to listen on (defaults to settings.server_port)
    """
    import uvicorn

    from taskweave import __version__
    from taskweave.api import create_app

    configure_logging()
    log = structlog.get_logger()

    host = host or settings.server_host
    port = port or settings.server_port

    log.info(
        "Starting Taskweave API",
        version=__version__,
        environment=settings.environment,
        host=host,
        port=port,
    )
    uvicorn.run(create_app(), host=host, port=port, log_config=None)
