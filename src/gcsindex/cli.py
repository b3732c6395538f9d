"""CLI entry point for gcs-index."""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from gcsindex.config import GCSIndexConfig, MountConfig, load_config
from gcsindex.logging_config import configure_logging
from gcsindex.server import create_app
from gcsindex.validation import InvalidMountSpec, parse_mount_spec


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="gcs-index",
        description="gcs-index - browsable HTTP index over Cloud Storage buckets",
    )
    parser.add_argument(
        "mounts",
        nargs="*",
        metavar="path:bucket:prefix",
        help="Mount a bucket prefix at a virtual path (repeatable)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address to bind to (overrides config)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (overrides config, default: $PORT or 8080)",
    )
    parser.add_argument(
        "--socket",
        type=str,
        default=None,
        help="Listen on a Unix domain socket instead of host:port",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config, default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Log format: 'text' (human-readable) or 'json' (structured)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--no-json",
        action="store_true",
        help="Never serve JSON listings",
    )
    parser.add_argument(
        "--no-readme",
        action="store_true",
        help="Do not render README files below listings",
    )
    parser.add_argument(
        "--skip-readme",
        action="store_true",
        help="Hide the README file from listings",
    )
    parser.add_argument(
        "--version-sort",
        action="store_true",
        help="Order names containing versions by version, highest first",
    )
    parser.add_argument(
        "--shutdown-timeout",
        type=int,
        default=None,
        help="Graceful shutdown timeout in seconds (default: 10)",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> GCSIndexConfig:
    """Load the config file, if any, and apply CLI overrides.

    Raises:
        FileNotFoundError: If --config names a missing file.
        InvalidMountSpec: If a mount argument is malformed.
    """
    config = load_config(args.config) if args.config is not None else GCSIndexConfig()

    for spec in args.mounts:
        mount = parse_mount_spec(spec)
        config.mounts.append(
            MountConfig(path=mount.path, bucket=mount.bucket, prefix=mount.prefix)
        )

    if args.host is not None:
        config.server.host = args.host
    if args.port is not None:
        config.server.port = args.port
    if args.socket is not None:
        config.server.unix_socket = args.socket
    if args.log_level is not None:
        config.server.log_level = args.log_level
    if args.verbose:
        config.server.log_level = "DEBUG"
    if args.log_format is not None:
        config.server.log_format = args.log_format
    if args.shutdown_timeout is not None:
        config.server.shutdown_timeout = args.shutdown_timeout
    if args.no_json:
        config.index.json_listing = False
    if args.no_readme:
        config.index.readme = False
    if args.skip_readme:
        config.index.skip_readme = True
    if args.version_sort:
        config.index.version_sort = True
    return config


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the gcs-index CLI.

    Loads configuration, applies CLI overrides, and starts the server
    using uvicorn. SIGINT/SIGTERM handling and the bounded drain on
    shutdown are provided by uvicorn.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].
    """
    args = parse_args(argv)

    # Use a basic stderr logger for config-loading errors
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)
    logger = logging.getLogger("gcsindex")

    try:
        config = build_config(args)
    except InvalidMountSpec as exc:
        logger.error("Invalid mount: %s", exc)
        sys.exit(2)
    except FileNotFoundError:
        logger.error("Config file not found: %s", args.config)
        sys.exit(1)
    except Exception as exc:
        logger.error("Failed to load config: %s", exc)
        sys.exit(1)

    if not config.mounts:
        logger.error("No mounts configured; usage: gcs-index path:bucket:prefix [...]")
        sys.exit(1)

    configure_logging(
        level=config.server.log_level,
        fmt=config.server.log_format,
    )

    try:
        app = create_app(config)
    except InvalidMountSpec as exc:
        logger.error("Invalid mount: %s", exc)
        sys.exit(2)

    if config.server.unix_socket:
        logger.info("Starting gcs-index on unix:%s", config.server.unix_socket)
        bind = {"uds": config.server.unix_socket}
    else:
        logger.info("Starting gcs-index on %s:%d", config.server.host, config.server.port)
        bind = {"host": config.server.host, "port": config.server.port}

    uvicorn.run(
        app,
        **bind,
        log_level=config.server.log_level.lower(),
        timeout_graceful_shutdown=config.server.shutdown_timeout,
    )


if __name__ == "__main__":
    main()
