"""
=============================================================================
ROUTEKIT CLI ENTRY POINT
=============================================================================

Runs an application's route setup function on the development server.

    # examples/blog.py defines `def setup(router): ...`
    python -m routekit examples.blog:setup

    # Mounted under a prefix, verbose router log in a file
    python -m routekit examples.blog:setup --home /blog/ \\
        --log-level DEBUG --log-file /tmp/blog.log

Settings come from ROUTEKIT_* environment variables first (see
ServerConfig.from_env), then command-line flags override them.
=============================================================================
"""

from typing import List, Optional
import argparse
import importlib
import logging
import sys

from . import __version__
from .app import Application
from .config import LOG_LEVELS, ServerConfig
from .logger import Logger
from .server import DevServer


def load_setup(target: str):
    """
    Import "package.module:function" and return the function.

    Raises:
        ValueError: If target has no ":" or the attribute is not callable.
        ImportError: If the module cannot be imported.
    """
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Expected MODULE:FUNCTION, got {target!r}")
    module = importlib.import_module(module_name)
    setup = getattr(module, attr, None)
    if not callable(setup):
        raise ValueError(f"{target!r} is not a callable")
    return setup


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="routekit",
        description="Serve a routekit application with the development server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m routekit examples.blog:setup
  python -m routekit examples.blog:setup --port 9000
  python -m routekit examples.blog:setup --home /blog/ --log-level DEBUG
        """,
    )
    parser.add_argument("target", help="Route setup function as MODULE:FUNCTION")

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", default=None, help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port (default: 8000)")

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--home", default=None, help="Path prefix the app is mounted under")
    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=None,
        help="Log level for server and router (default: INFO)",
    )
    parser.add_argument("--log-file", default=None, help="Router log file (default: stderr)")
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = ServerConfig.from_env()
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.home is not None:
        config.home = args.home
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_file is not None:
        config.log_file = args.log_file

    try:
        config.validate()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Make the current directory importable, as `python -m` users expect.
    if "" not in sys.path:
        sys.path.insert(0, "")

    try:
        setup = load_setup(args.target)
    except (ImportError, ValueError) as e:
        print(f"Cannot load {args.target}: {e}", file=sys.stderr)
        return 2

    router_logger = Logger(config.log_level, path=config.log_file)
    application = Application(setup, logger=router_logger, home=config.home)

    server = DevServer(application, config)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        router_logger.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
