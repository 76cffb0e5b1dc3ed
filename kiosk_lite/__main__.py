"""Command-line entry for kiosk_lite.

Parses a handful of options and hands off to ``kiosk_lite.run_server()``.
"""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for kiosk_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="kiosk_lite",
        description="Kiosk Lite - periodic weather/RSS/calendar fetcher with a polling API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m kiosk_lite                          # Use ./config.yaml, port 8080
  python -m kiosk_lite --config kiosk.yaml      # Use a specific config file
  python -m kiosk_lite --port 3000 --debug      # Override port, verbose logs
        """,
    )

    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Path to the YAML configuration (default: config.yaml, or KIOSK_CONFIG_PATH)",
    )
    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (overrides server.port from config)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging for kiosk_lite modules",
    )

    return parser


def main() -> NoReturn:
    """Run the kiosk_lite CLI."""
    parser = _create_parser()
    args = parser.parse_args()

    from .config_loader import ConfigError

    try:
        run_server(args)
    except ConfigError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        sys.exit(2)
    except OSError as exc:
        print(f"Server could not start: {exc}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
