"""
=============================================================================
URL SHORTENER CLI ENTRY POINT
=============================================================================

    # Run with defaults (0.0.0.0:8080, short URLs "localhost:8080/<code>")
    python -m urlshortener

    # Custom port and public short URL host
    python -m urlshortener --port 3000 --url-host sho.rt

    # Fail instead of widening codes once "ZZZZ" is used
    python -m urlshortener --overflow fail

    # Machine-readable access log
    python -m urlshortener --log-format json

Settings come from, in priority order: command-line flags, SHORTENER_*
environment variables (see ServerConfig.from_env), built-in defaults.

=============================================================================
"""

import argparse
import dataclasses
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig, LOG_LEVELS, LOG_FORMATS
from .exceptions import BindError
from .server import ShortenerServer
from .shortener.codes import OverflowPolicy


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="urlshortener",
        description="Tiny asynchronous URL shortening service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m urlshortener                       # Run with defaults
  python -m urlshortener --port 3000           # Custom port
  python -m urlshortener --url-host sho.rt     # Issue sho.rt/AAAA style URLs
  python -m urlshortener --overflow fail       # Never widen codes
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", default=None,
                        help="Address to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", "-p", type=int, default=None,
                        help="Port to listen on (default: 8080)")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Read timeout per connection in seconds (default: none)")

    # ─────────────────────────────────────────────────────────────────────
    # SHORTENER ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--url-host", default=None,
                        help="Prefix of issued short URLs (default: localhost:8080)")
    parser.add_argument("--code-width", type=int, default=None,
                        help="Width of the first codes (default: 4)")
    parser.add_argument("--overflow", choices=[p.value for p in OverflowPolicy], default=None,
                        help="What to do after the last code of a width (default: widen)")

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--log-level", "-l", choices=LOG_LEVELS, default=None,
                        help="Logging level (default: INFO)")
    parser.add_argument("--log-format", choices=LOG_FORMATS, default=None,
                        help="Access log format (default: text)")

    parser.add_argument("--version", "-v", action="version",
                        version=f"urlshortener {__version__}")
    return parser


def config_from_args(args: argparse.Namespace, base: Optional[ServerConfig] = None) -> ServerConfig:
    """Overlay the flags that were given on top of `base` (env/defaults)."""
    base = base or ServerConfig.from_env()
    overrides = {
        "host": args.host,
        "port": args.port,
        "timeout": args.timeout,
        "short_url_host": args.url_host,
        "code_width": args.code_width,
        "code_overflow": args.overflow,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    return dataclasses.replace(
        base, **{name: value for name, value in overrides.items() if value is not None}
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = ShortenerServer(config)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except BindError as e:
        logger.error(f"Startup failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
