"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    # Run with defaults (127.0.0.1:1234)
    python -m rawhttp

    # Custom port, all interfaces
    python -m rawhttp --host 0.0.0.0 --port 8080

    # JSON access logs
    python -m rawhttp --log-format json

Settings are read from the environment first (see config.py), then any
flag given on the command line overrides them.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .server import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rawhttp",
        description="Minimal HTTP/1.x server over raw asyncio streams",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m rawhttp                          # Run with defaults
  python -m rawhttp --port 3000              # Custom port
  python -m rawhttp --host 0.0.0.0           # Listen on all interfaces
  curl -d hello http://127.0.0.1:1234/echo   # Echo a request body
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 1234)"
    )

    parser.add_argument(
        "--backlog",
        type=int,
        default=None,
        help="Accept queue length (default: 128)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # HTTP ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--max-header-size",
        type=int,
        default=None,
        help="Largest accepted header block in bytes (default: 8192)"
    )

    parser.add_argument(
        "--no-keep-alive",
        action="store_true",
        help="Close every connection after one response"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"rawhttp {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment settings, overridden by whatever flags were given."""
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.backlog is not None:
        config.backlog = args.backlog
    if args.max_header_size is not None:
        config.max_header_size = args.max_header_size
    if args.no_keep_alive:
        config.keep_alive = False
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = create_app(config)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
