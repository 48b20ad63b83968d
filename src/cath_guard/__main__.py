"""CLI entry point for CATH Guard.

Usage:
    python -m cath_guard [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.config
import sys
from typing import NoReturn

from pydantic import ValidationError

from cath_guard import __version__
from cath_guard.application import Application
from cath_guard.config import Settings, clear_settings_cache, get_settings
from cath_guard.shutdown import GracefulShutdown

APP_NAME = "CATH Guard"
APP_VERSION = __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="cath-guard",
        description="Wallet protection service: token screening, tiers and arbitrage bots.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cath-guard                      Run the API and lifecycle scheduler
  cath-guard --config-check       Validate config and exit
  cath-guard --http-port 9000     Serve on another port
  cath-guard --log-level DEBUG    Enable debug logging
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )

    parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration and exit",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level (default: from settings)",
    )

    parser.add_argument(
        "--http-port",
        type=int,
        default=None,
        help="Override HTTP API port (default: from settings)",
    )

    return parser


def configure_logging(level: str) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": (
                    "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if level == "DEBUG" else "standard",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
            "aiohttp.access": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "WARNING"},
            "asyncio": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)


def print_banner() -> None:
    """Print the application startup banner."""
    banner = f"""
╔══════════════════════════════════════════════════════════════╗
║   {APP_NAME:^56}   ║
║   {"v" + APP_VERSION:^56}   ║
╚══════════════════════════════════════════════════════════════╝
"""
    print(banner)


def print_config_summary(settings: Settings) -> None:
    """Print a summary of the configuration."""
    summary = settings.redacted_summary()
    pricing = settings.pricing

    print("Configuration:")
    print(f"  Database: {summary['database_url']}")
    print(f"  Redis: {summary['redis_url']}")
    print(f"  Deep3: {settings.deep3.api_url or '(mock)'}")
    print(f"  Pricing: {pricing.source} (cache {pricing.cache_ttl_seconds}s)")
    print(f"  Lifecycle Interval: {summary['lifecycle_interval_seconds']}s")
    print(f"  HTTP: {summary['http']}")
    print(f"  Log Level: {summary['log_level']}")
    print()


def validate_config() -> Settings | None:
    """Load configuration, printing each validation error.

    Returns:
        Settings instance if valid, None if invalid.
    """
    try:
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        print("Configuration validation failed:", file=sys.stderr)
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            print(f"  {field}: {error['msg']}", file=sys.stderr)
        return None


def run_config_check(settings: Settings) -> int:
    """Print the validated configuration and report component modes."""
    print("Configuration is valid!")
    print()
    print_config_summary(settings)

    print("Checking component availability...")
    print(f"  Storage: {'sql' if settings.database.enabled else 'memory'}")
    print(f"  Event stream: {'redis' if settings.redis.enabled else 'websocket only'}")
    print(f"  Deep3: {'mock' if settings.deep3.use_mock else 'http'}")
    print()
    print("All checks passed. Ready to run.")
    return EXIT_SUCCESS


async def run_service(settings: Settings, shutdown_timeout: float = 30.0) -> int:
    """Run the service until a shutdown signal arrives.

    Args:
        settings: Application settings.
        shutdown_timeout: Maximum time to wait for graceful shutdown.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)
    shutdown = GracefulShutdown(timeout=shutdown_timeout)

    try:
        async with shutdown:
            application = Application(settings)
            shutdown.register_cleanup(application.stop)

            logger.info("Starting CATH Guard...")
            await application.start()

            logger.info("Service running. Press Ctrl+C to stop.")
            await shutdown.wait()

            logger.info("Shutdown signal received, stopping service...")
            await application.stop()

        return EXIT_SUCCESS
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.exception("Service failed: %s", e)
        return EXIT_ERROR


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = validate_config()
    if settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    if args.http_port is not None:
        settings = settings.model_copy(update={"http_port": args.http_port})

    configure_logging(args.log_level or settings.log_level)
    print_banner()

    if args.config_check:
        sys.exit(run_config_check(settings))

    print_config_summary(settings)

    exit_code = asyncio.run(run_service(settings))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
