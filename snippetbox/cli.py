"""Command-line entry point: parse flags, check the database, serve over HTTP."""

import argparse
import asyncio
import os
import sys

import uvicorn
from jinja2 import TemplateError
from pydantic import ValidationError

from .config import Settings
from .db import verify_database
from .logger import configure_logging, logger


def parse_addr(addr: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts; an empty host listens on all interfaces.

    >>> parse_addr(":4000")
    ('0.0.0.0', 4000)
    """
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"invalid address {addr!r}: expected host:port")
    host = host.strip("[]") or "0.0.0.0"
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"invalid port in address {addr!r}") from None
    if not 0 <= port_number <= 65535:
        raise ValueError(f"port out of range in address {addr!r}")
    return host, port_number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="snippetbox", description="Snippetbox web server")
    parser.add_argument("-addr", "--addr", default=os.getenv("ADDR", ":4000"),
                        help="HTTP network address (default :4000)")
    parser.add_argument("-static-dir", "--static-dir", dest="static_dir",
                        default=os.getenv("STATIC_DIR", "./ui/static/"),
                        help="Path to static assets")
    parser.add_argument("-template-dir", "--template-dir", dest="template_dir",
                        default=os.getenv("TEMPLATE_DIR", "./ui/html/"),
                        help="Path to the HTML templates")
    parser.add_argument("-dsn", "--dsn", default=os.getenv("DB_URL", ""),
                        help="Database connection string (default $DB_URL)")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.dsn:
        parser.error("a database DSN is required: pass -dsn or set DB_URL")
    try:
        parse_addr(args.addr)
    except ValueError as e:
        parser.error(str(e))
    return args


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    try:
        settings = Settings(
            ADDR=args.addr,
            DB_URL=args.dsn,
            STATIC_DIR=args.static_dir,
            TEMPLATE_DIR=args.template_dir,
        )
    except ValidationError as e:
        configure_logging()
        logger.critical(f"Invalid configuration: {e}")
        sys.exit(1)

    configure_logging(settings)

    if not asyncio.run(verify_database(settings)):
        logger.critical("Could not connect to the database - exiting")
        sys.exit(1)

    # Imported late so that flag errors do not pay for the web stack
    from .main import create_app

    try:
        app = create_app(settings)
    except (TemplateError, OSError) as e:
        logger.critical(f"Could not build the template cache: {e}")
        sys.exit(1)

    host, port = parse_addr(settings.ADDR)
    logger.info(f"Starting server on {settings.ADDR}")
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=settings.LOG_LEVEL.lower(),
        timeout_graceful_shutdown=settings.GRACEFUL_SHUTDOWN_TIMEOUT,
    )
