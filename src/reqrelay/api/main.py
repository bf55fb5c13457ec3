"""ReqRelay API service entry point.

    reqrelay-api                  # serve on REQRELAY_API_HOST:REQRELAY_API_PORT
    reqrelay-api --health-check   # print a health report, exit 0 or 1

The app is created using the factory pattern from reqrelay.api.create_app().
"""

import argparse
import asyncio
import logging
import sys

from reqrelay.api import create_app

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Create the application instance for ASGI servers
# This is what uvicorn references: reqrelay.api.main:app
# Settings are loaded when the lifespan starts, not at import.
app = create_app()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reqrelay-api",
        description="Run the ReqRelay API server.",
    )
    parser.add_argument(
        "--health-check",
        action="store_true",
        help="check database, broker and migrations, then exit 0 (healthy) or 1",
    )
    return parser


def health_check_main() -> int:
    """Run the health checks once and print the report.

    Returns:
        Process exit code: 0 if healthy, 1 otherwise.
    """
    from reqrelay.core.settings import get_settings
    from reqrelay.services.health import run_health_check

    settings = get_settings()
    report = asyncio.run(run_health_check(settings))
    print(report.format_report())
    return 0 if report.is_healthy else 1


def run(argv: list[str] | None = None) -> None:
    """Run the API server using uvicorn.

    This function is called by the reqrelay-api console script
    defined in pyproject.toml.
    """
    args = build_parser().parse_args(argv)

    from reqrelay.core.settings import get_settings

    # Configured before settings load so the validation lines are kept.
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level)

    if args.health_check:
        sys.exit(health_check_main())

    import uvicorn

    logger.info("Starting ReqRelay API on %s:%d", settings.api_host, settings.api_port)
    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
        timeout_graceful_shutdown=settings.shutdown_timeout,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
