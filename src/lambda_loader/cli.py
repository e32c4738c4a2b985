# src/lambda_loader/cli.py

import argparse
import sys
from typing import Any, Dict, List, Optional

from lambda_loader import log_utils
from lambda_loader.cache import LocalCache
from lambda_loader.checksum import ChecksumStore
from lambda_loader.config import apply_logging_config, load_config
from lambda_loader.constants import (
    EXIT_ACQUISITION_FAILED,
    EXIT_NO_VERSION_AVAILABLE,
    EXIT_OK,
)
from lambda_loader.controller import VersionAcquisitionController
from lambda_loader.exceptions import (
    AcquisitionError,
    ConfigurationError,
    FetchError,
    NoVersionAvailable,
)
from lambda_loader.models import ReleaseChannel
from lambda_loader.policies import (
    check_for_update,
    client_spec,
    get_current_loader_version,
    loader_spec,
)
from lambda_loader.transport import HttpClient

ARTIFACT_CHOICES = ("client", "loader")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lambda-loader",
        description="lambda-loader - verified Maven artifact acquisition",
    )
    parser.add_argument("--config", help="Path to the YAML configuration file")
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-level", help="Console log level (e.g. INFO, DEBUG)")
    parser.add_argument("--cache-dir", help="Directory to cache artifacts in")

    subparsers = parser.add_subparsers(dest="command")

    fetch_parser = subparsers.add_parser(
        "fetch", help="Ensure the latest artifact is cached and print its path"
    )
    fetch_parser.add_argument("artifact", choices=ARTIFACT_CHOICES)
    fetch_parser.add_argument(
        "--platform-version",
        help="Host application version the client must match (client only)",
    )
    fetch_parser.add_argument(
        "--channel",
        choices=[channel.value for channel in ReleaseChannel],
        help="Override the configured release channel",
    )

    update_parser = subparsers.add_parser(
        "check-update", help="Check whether a newer loader is published"
    )
    update_parser.add_argument(
        "--current", help="Version to compare against (defaults to the installed one)"
    )

    subparsers.add_parser("clear-cache", help="Remove all cached artifacts")
    subparsers.add_parser("version", help="Display lambda-loader version")
    return parser


def _load_settings(args: argparse.Namespace) -> Optional[Dict[str, Any]]:
    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        log_utils.logger.error(f"Failed to load configuration: {e}")
        return None

    if args.debug:
        config["DEBUG"] = True
    if args.cache_dir:
        config["CACHE_DIR"] = args.cache_dir
    apply_logging_config(config)
    if args.log_level:
        log_utils.set_log_level(args.log_level)
    return config


def _build_controller(
    config: Dict[str, Any], args: argparse.Namespace
) -> Optional[VersionAcquisitionController]:
    if args.artifact == "client":
        if args.channel:
            config["CLIENT_RELEASE_MODE"] = args.channel
        spec = client_spec(config, args.platform_version)
    else:
        if args.channel:
            config["LOADER_RELEASE_MODE"] = args.channel
        spec = loader_spec(config)
    return _controller_for(config, spec)


def _open_cache(
    config: Dict[str, Any], checksum_store: Optional[ChecksumStore] = None
) -> Optional[LocalCache]:
    try:
        return LocalCache(config.get("CACHE_DIR"), checksum_store=checksum_store)
    except OSError as e:
        log_utils.logger.error(f"Cannot use cache directory: {e}")
        return None


def _controller_for(
    config: Dict[str, Any], spec
) -> Optional[VersionAcquisitionController]:
    checksum_store = ChecksumStore(spec.checksum_algorithm)
    cache = _open_cache(config, checksum_store)
    if cache is None:
        return None
    return VersionAcquisitionController(
        spec,
        cache=cache,
        client=HttpClient(
            timeout=float(config["HTTP_TIMEOUT"]), retries=int(config["HTTP_RETRIES"])
        ),
        checksum_store=checksum_store,
    )


def run_fetch(config: Dict[str, Any], args: argparse.Namespace) -> int:
    """
    Acquire the requested artifact and print its local path.

    Returns:
        int: EXIT_OK on success, EXIT_NO_VERSION_AVAILABLE when nothing compatible
        is published, EXIT_ACQUISITION_FAILED for any other failure.
    """
    if args.artifact == "client" and not args.platform_version:
        log_utils.logger.warning(
            "No --platform-version given; accepting any client version"
        )

    controller = _build_controller(config, args)
    if controller is None:
        return EXIT_ACQUISITION_FAILED
    try:
        jar_path = controller.ensure_latest()
    except NoVersionAvailable as e:
        log_utils.logger.critical(f"Cannot continue: {e}")
        return EXIT_NO_VERSION_AVAILABLE
    except (AcquisitionError, FetchError) as e:
        log_utils.logger.error(f"Failed to acquire {args.artifact}: {e}")
        return EXIT_ACQUISITION_FAILED
    finally:
        controller.client.close()

    log_utils.logger.debug(f"Latest version ready: {jar_path}")
    print(jar_path)
    return EXIT_OK


def run_check_update(config: Dict[str, Any], args: argparse.Namespace) -> int:
    controller = _controller_for(config, loader_spec(config))
    if controller is None:
        return EXIT_ACQUISITION_FAILED
    try:
        latest = check_for_update(controller, args.current)
    finally:
        controller.client.close()
    if latest:
        print(latest)
    return EXIT_OK


def run_clear_cache(config: Dict[str, Any]) -> int:
    cache = _open_cache(config)
    if cache is None:
        return EXIT_ACQUISITION_FAILED
    removed = cache.clear()
    log_utils.logger.info(f"Removed {removed} cached file(s) from {cache.cache_dir}")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the lambda-loader command-line interface.

    Parses arguments, loads configuration, and dispatches the fetch,
    check-update, clear-cache and version subcommands. Exits with a non-zero
    status when a command fails.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(EXIT_OK)

    if args.command == "version":
        version = get_current_loader_version() or "unknown"
        log_utils.logger.info(f"lambda-loader {version}")
        sys.exit(EXIT_OK)

    config = _load_settings(args)
    if config is None:
        sys.exit(EXIT_ACQUISITION_FAILED)

    if args.command == "fetch":
        sys.exit(run_fetch(config, args))
    elif args.command == "check-update":
        sys.exit(run_check_update(config, args))
    elif args.command == "clear-cache":
        sys.exit(run_clear_cache(config))


if __name__ == "__main__":
    main()
