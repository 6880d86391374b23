"""
=============================================================================
FILE SERVER CLI ENTRY POINT
=============================================================================

    python -m fileserver PORT ROOT [options]
    fileserver PORT ROOT [options]          (installed console script)

Examples:

    # Serve ./public on port 8080, every interface, IPv4 and IPv6
    python -m fileserver 8080 ./public

    # IPv4 loopback only, with a 10 second read timeout
    python -m fileserver 8080 ./public --host 127.0.0.1 --timeout 10

    # Also confine resolved paths to the root
    python -m fileserver 8080 ./public --strict-paths

=============================================================================
EXIT STATUS
=============================================================================

    0   shut down by SIGINT / SIGTERM
    1   invalid configuration, or the listening socket couldn't be set up
    2   bad command line (argparse)

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig, LOG_FORMATS
from .errors import SocketSetupFailure
from .server import FileServer


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="fileserver",
        description="Minimal HTTP/1.0 file server: GET requests, one connection at a time",
    )

    parser.add_argument(
        "port",
        type=int,
        help="Port to listen on",
    )

    parser.add_argument(
        "root",
        help="Directory to serve files from",
    )

    parser.add_argument(
        "--host", "-H",
        default="::",
        help="Address to bind to (default: :: for all interfaces, IPv4 and IPv6)",
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Seconds to wait on a silent client before dropping it (default: wait forever)",
    )

    parser.add_argument(
        "--strict-paths",
        action="store_true",
        help="Reject targets whose resolved path leaves ROOT (catches trailing '/..' and symlinks)",
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default="text",
        help="Access log format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"fileserver {__version__}",
    )

    return parser


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    config = ServerConfig(
        root=args.root,
        host=args.host,
        port=args.port,
        timeout=args.timeout,
        strict_paths=args.strict_paths,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        server = FileServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        server.run()
    except SocketSetupFailure as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
