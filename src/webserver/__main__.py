"""
=============================================================================
COMMAND LINE INTERFACE
=============================================================================

Entry point for running the server from the command line:

    $ python -m webserver
    $ python -m webserver --port 3000 --document-root ./public
    $ webserver --config Config/server-config.json --log-level DEBUG

=============================================================================
STARTUP SEQUENCE
=============================================================================

    1. Create Config/ (the config file's directory)
    2. Load Config/server-config.json, writing defaults if it is missing
    3. Apply WEBSERVER_* environment variables
    4. Apply command line options
    5. Create the document root and log directory
    6. Bind and serve until Ctrl+C / SIGTERM

A bad configuration value or a port that cannot be bound ends the
process with exit status 1.

=============================================================================
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Mapping, Optional

from . import __version__
from .config import DEFAULT_CONFIG_PATH, LOG_LEVELS, ConfigError, ServerConfig
from .server import HTTPServer


logger = logging.getLogger("webserver")


def build_parser() -> argparse.ArgumentParser:
    """
    =========================================================================
    ARGUMENT PARSING
    =========================================================================

    - --config: Path of the JSON configuration file
    - --port, -p: Server port
    - --host, -H: Bind address
    - --document-root, -d: Directory to serve
    - --log-directory: Directory for access logs
    - --read-timeout: Seconds a socket read may block
    - --log-level, -l: Logging verbosity
    - --version, -v: Show version

    Every option defaults to None, meaning "keep the value from the
    config file / environment".

    =========================================================================
    """
    parser = argparse.ArgumentParser(
        prog="webserver",
        description="Minimal concurrent static-file HTTP/1.1 server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m webserver                            # Run with Config/server-config.json
  python -m webserver --port 3000                # Custom port
  python -m webserver --host 127.0.0.1           # Localhost only
  python -m webserver -d ./public                # Serve another directory
  python -m webserver --read-timeout 30          # Drop silent clients after 30s
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONFIGURATION SOURCE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"JSON configuration file, created with defaults if missing (default: {DEFAULT_CONFIG_PATH})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 8080)"
    )

    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 0.0.0.0, all interfaces)"
    )

    parser.add_argument(
        "--read-timeout",
        type=float,
        help="Seconds a single socket read may block (default: no timeout)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--document-root", "-d",
        help="Directory to serve static files from (default: ./StaticFiles)"
    )

    parser.add_argument(
        "--log-directory",
        help="Directory for access_YYYY-MM-DD.log files (default: ./Logs)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Console logging level (default: INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"webserver {__version__}"
    )

    return parser


def load_config(
    args: argparse.Namespace,
    environ: Optional[Mapping[str, str]] = None,
) -> ServerConfig:
    """
    Resolve the configuration: defaults < file < environment < CLI.

    Raises:
        ConfigError: An environment or command line value is invalid.
    """
    Path(args.config).parent.mkdir(parents=True, exist_ok=True)

    config = ServerConfig.load_or_create(args.config)
    config = config.with_env(environ)
    return config.override(
        port=args.port,
        host=args.host,
        document_root=args.document_root,
        log_directory=args.log_directory,
        read_timeout=args.read_timeout,
        log_level=args.log_level,
    )


def ensure_directories(config: ServerConfig):
    """Create the document root and log directory if they do not exist."""
    for directory in (config.document_root, config.log_directory):
        os.makedirs(directory, exist_ok=True)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    # Early console logging so configuration problems are visible;
    # HTTPServer applies the configured level when it starts
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        config = load_config(args)
        ensure_directories(config)
        server = HTTPServer(config)
    except (ConfigError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        server.run()
    except Exception as e:
        logger.error(f"Server failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
