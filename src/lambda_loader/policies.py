"""
Acquisition policies.

Two RepositorySpec factories configure the one controller for the two things
the loader fetches: the client library, which must match the host
application's version, and the loader itself, which always takes the newest
build.
"""

import importlib.metadata
from typing import Any, Callable, Dict, Optional, Union

from lambda_loader.constants import (
    CLIENT_ARTIFACT_NAME,
    CLIENT_GROUP_PATH,
    DISTRIBUTION_NAME,
    LOADER_ARTIFACT_NAME,
    LOADER_GROUP_PATH,
)
from lambda_loader.exceptions import FetchError
from lambda_loader.log_utils import logger

from .config import release_mode_provider
from .controller import VersionAcquisitionController
from .models import RepositorySpec

PlatformVersion = Union[str, Callable[[], Optional[str]], None]


def _constraint_provider(platform_version: PlatformVersion) -> Callable[[], Optional[str]]:
    if callable(platform_version):
        return platform_version

    def _provider() -> Optional[str]:
        return platform_version

    return _provider


def client_spec(
    config: Dict[str, Any],
    platform_version: PlatformVersion,
    repository_url: Optional[str] = None,
) -> RepositorySpec:
    """
    Build the RepositorySpec for the client library, matched to the host application version.

    Parameters:
        config (Dict[str, Any]): Loaded configuration; CLIENT_RELEASE_MODE is read on every acquisition.
        platform_version: Host application version, or a callable returning it.
        repository_url (Optional[str]): Override for CLIENT_MAVEN_URL.
    """
    return RepositorySpec(
        repository_url=repository_url or config["CLIENT_MAVEN_URL"],
        group_path=CLIENT_GROUP_PATH,
        artifact_name=CLIENT_ARTIFACT_NAME,
        version_matching_enabled=True,
        release_mode_provider=release_mode_provider(config, "CLIENT_RELEASE_MODE"),
        version_constraint_provider=_constraint_provider(platform_version),
        checksum_algorithm=config["CHECKSUM_ALGORITHM"],
    )


def loader_spec(
    config: Dict[str, Any], repository_url: Optional[str] = None
) -> RepositorySpec:
    """RepositorySpec for loader self-updates: no version matching, newest wins."""
    return RepositorySpec(
        repository_url=repository_url or config["LOADER_MAVEN_URL"],
        group_path=LOADER_GROUP_PATH,
        artifact_name=LOADER_ARTIFACT_NAME,
        version_matching_enabled=False,
        release_mode_provider=release_mode_provider(config, "LOADER_RELEASE_MODE"),
        checksum_algorithm=config["CHECKSUM_ALGORITHM"],
    )


def get_current_loader_version() -> Optional[str]:
    """
    Return the installed loader version, or None if it cannot be determined.
    """
    try:
        version = importlib.metadata.version(DISTRIBUTION_NAME)
    except importlib.metadata.PackageNotFoundError:
        logger.warning("Could not determine current loader version")
        return None
    logger.debug(f"Current loader version: {version}")
    return version


def check_for_update(
    controller: VersionAcquisitionController, current_version: Optional[str] = None
) -> Optional[str]:
    """
    Compare the running loader version with the newest published one.

    Only the configured channel is consulted, with no snapshot fallback, and
    the raw metadata version is compared (e.g. `0.2.0-SNAPSHOT`, not the
    timestamped snapshot build).

    Parameters:
        controller (VersionAcquisitionController): Controller built from loader_spec().
        current_version (Optional[str]): Running version; detected when omitted.

    Returns:
        Optional[str]: The latest version if it differs from the current one (or the
        current one is unknown); None when up to date or the latest cannot be fetched.
    """
    if current_version is None:
        current_version = get_current_loader_version()

    try:
        config = controller.spec.acquisition_config()
        latest_version = controller.resolver.resolve_version(
            config.channel, config.version_constraint, config.version_matching_enabled
        )
    except FetchError as e:
        logger.warning(f"Could not fetch latest loader version: {e}")
        return None

    if latest_version is None:
        logger.warning("Could not fetch latest loader version")
        return None

    if current_version is None:
        logger.info(f"Latest loader version available: {latest_version}")
        return latest_version

    if current_version != latest_version:
        logger.info(f"Loader update available: {current_version} -> {latest_version}")
        return latest_version

    logger.info(f"Loader is up to date: {current_version}")
    return None
