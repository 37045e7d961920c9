"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    namesite                       # port from PORT / NODE_PORT / 3000
    namesite --port 8080
    namesite --log-level DEBUG --log-format json
    python -m namesite --host 127.0.0.1

Exit status is 1 when the server cannot start (bad configuration, missing
favicon, port already in use).

=============================================================================
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .app import create_app
from .config import AppConfig, LOG_LEVELS
from .server import configure_logging


logger = logging.getLogger("namesite")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="namesite",
        description="Serve the namesite pages and name API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  PORT, NODE_PORT     listen port (first one set wins, default 3000)
  HTTP_HOST           bind address (default 0.0.0.0)
  HTTP_WORKERS        max worker threads (default 16)
  HTTP_LOG_LEVEL      log level (default INFO)
  HTTP_LOG_FORMAT     access log format, text or json (default text)
        """
    )

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Address to bind (overrides HTTP_HOST)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (overrides PORT and NODE_PORT)"
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help="Logging level (overrides HTTP_LOG_LEVEL)"
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format (overrides HTTP_LOG_FORMAT)"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"namesite {__version__}"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    configure_logging(args.log_level or "INFO")

    try:
        config = AppConfig.from_env(
            host=args.host,
            port=args.port,
            log_level=args.log_level,
            log_format=args.log_format,
        )
        server = create_app(config)
    except (ValueError, OSError) as e:
        logger.critical(f"Cannot start: {e}")
        return 1

    try:
        server.run()
    except OSError:
        # run() already logged the bind failure
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
