"""Command line entry point for the ecobee bridge."""

import argparse
import logging
import sys

import uvicorn

from .bridge import EcobeeBridge
from .config import ConfigError, load_config
from .const import DEFAULT_CONFIG_FILE, DEFAULT_HOST, DEFAULT_PORT
from .server import create_app

_LOGGER = logging.getLogger(__name__)

VERSION = "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="ecobee-bridge",
        description="ecobee bridge to HomeKit",
    )
    parser.add_argument("--version", action="version", version=VERSION)
    parser.add_argument(
        "-c",
        "--config",
        metavar="CONFIG_FILE",
        default=DEFAULT_CONFIG_FILE,
        help="path to config file",
    )
    parser.add_argument(
        "-H",
        "--host",
        default=DEFAULT_HOST,
        help="HTTP host to listen to",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help="HTTP port to listen to",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="enable debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Load the configuration and serve the bridge until interrupted."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
    except ConfigError as err:
        _LOGGER.error("%s", err)
        return 1

    app = create_app(EcobeeBridge.from_config(config))

    _LOGGER.info("Starting HTTP server: http://%s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
