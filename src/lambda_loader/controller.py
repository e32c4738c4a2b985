"""
Version Acquisition Controller

This module implements the orchestration layer that guarantees a verified,
cached copy of the latest eligible artifact is available locally.

Flow of ensure_latest():
    IDLE -> CHECK_CACHE -> CACHED -> READY
                        -> DOWNLOADING -> VERIFYING -> READY
    Any failure moves the controller to FAILED and raises an AcquisitionError.
"""

from pathlib import Path
from typing import Optional, Tuple

from lambda_loader.constants import FATAL_BANNER
from lambda_loader.exceptions import (
    AcquisitionError,
    CacheVerificationFailed,
    ChecksumMismatch,
    ChecksumUnavailable,
    DownloadFailed,
    FetchError,
    NoVersionAvailable,
)
from lambda_loader.log_utils import logger

from .cache import LocalCache
from .checksum import ChecksumStore, parse_checksum_text
from .locator import ArtifactLocator
from .metadata import MetadataResolver
from .models import (
    AcquisitionConfig,
    AcquisitionState,
    ArtifactReference,
    ReleaseChannel,
    RepositorySpec,
)
from .transport import HttpClient


class VersionAcquisitionController:
    """
    Orchestrates resolution, checksum lookup, caching and download for one artifact.

    One controller serves one RepositorySpec. Controllers for different
    artifacts may share a cache directory.
    """

    def __init__(
        self,
        spec: RepositorySpec,
        cache: Optional[LocalCache] = None,
        client: Optional[HttpClient] = None,
        checksum_store: Optional[ChecksumStore] = None,
    ):
        """
        Parameters:
            spec (RepositorySpec): Repository coordinates and policy providers.
            cache (Optional[LocalCache]): Cache to store artifacts in; a default user cache is created if omitted.
            client (Optional[HttpClient]): HTTP transport; a default client is created if omitted.
            checksum_store (Optional[ChecksumStore]): Digest implementation; defaults to the RepositorySpec's algorithm.
        """
        self.spec = spec
        self.checksum_store = checksum_store or ChecksumStore(spec.checksum_algorithm)
        self.cache = cache or LocalCache(checksum_store=self.checksum_store)
        self.client = client or HttpClient()
        self.resolver = MetadataResolver(spec, self.client)
        self.locator = ArtifactLocator(spec, self.resolver)
        self.state = AcquisitionState.IDLE
        self.last_reference: Optional[ArtifactReference] = None

    def _set_state(self, state: AcquisitionState) -> None:
        logger.debug(
            f"{self.spec.artifact_name}: {self.state.value} -> {state.value}"
        )
        self.state = state

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _locate(
        self, subject: str
    ) -> Tuple[AcquisitionConfig, Optional[ArtifactReference]]:
        config = self.spec.acquisition_config()
        return config, self.locator.locate(config, subject)

    def resolve_reference(self, subject: str = "version") -> Optional[ArtifactReference]:
        """
        Resolve the artifact reference for the current configuration.

        Each call re-runs the channel fallback against the repository.

        Raises:
            FetchError: When no reference was found and a channel could not be fetched.
        """
        return self._locate(subject)[1]

    def resolve_version(self) -> Optional[str]:
        reference = self.resolve_reference("version")
        return reference.file_version if reference else None

    def resolve_jar_url(self) -> Optional[str]:
        reference = self.resolve_reference("jar")
        return reference.jar_url if reference else None

    def resolve_checksum_url(self) -> Optional[str]:
        reference = self.resolve_reference("version checksum")
        return reference.checksum_url if reference else None

    def resolve_cache_filename(self) -> Optional[str]:
        reference = self.resolve_reference("cache filename")
        return reference.cache_filename if reference else None

    # ------------------------------------------------------------------
    # Network steps
    # ------------------------------------------------------------------

    def fetch_checksum(self, reference: ArtifactReference) -> str:
        """
        Fetch the published checksum for `reference`.

        Raises:
            ChecksumUnavailable: If the sidecar cannot be fetched or is empty.
        """
        url = reference.checksum_url
        try:
            text = self.client.get_text(url)
        except FetchError as e:
            logger.error(f"Failed to download checksum from {url}: {e}")
            raise ChecksumUnavailable(
                "Published checksum is unavailable",
                artifact_name=reference.artifact_name,
                url=url,
                details=str(e),
            ) from e

        checksum = parse_checksum_text(text)
        if checksum is None:
            logger.error(f"Checksum file at {url} is empty")
            raise ChecksumUnavailable(
                "Published checksum is empty",
                artifact_name=reference.artifact_name,
                url=url,
            )
        return checksum

    def download_jar(self, reference: ArtifactReference) -> bytes:
        """
        Raises:
            DownloadFailed: If the jar cannot be fetched.
        """
        url = reference.jar_url
        logger.debug(f"Downloading JAR from: {url}")
        try:
            return self.client.get_bytes(url)
        except FetchError as e:
            logger.error(f"Failed to download JAR: {e}")
            raise DownloadFailed(
                "Failed to download artifact",
                artifact_name=reference.artifact_name,
                url=url,
                details=str(e),
            ) from e

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    def _unavailable_error(self, config: AcquisitionConfig) -> AcquisitionError:
        """
        Classify a lookup that found nothing in the configured channel.

        Snapshot mode never acquires from releases. A qualifying release still
        means versions exist, so the failure is reported as non-fatal.
        """
        if config.channel is ReleaseChannel.SNAPSHOT:
            stable_version = self.resolver.resolve_version(
                ReleaseChannel.STABLE,
                config.version_constraint,
                config.version_matching_enabled,
            )
            if stable_version is not None:
                artifact_name = self.spec.artifact_name
                logger.error(
                    f"Failed to ensure latest version is cached: no {artifact_name} "
                    f"snapshot found, stable {stable_version} is not used in snapshot mode"
                )
                return AcquisitionError(
                    "No snapshot version available",
                    artifact_name=artifact_name,
                    details=f"stable version {stable_version} exists",
                )
        return self._no_version_error(config)

    def _no_version_error(self, config: AcquisitionConfig) -> NoVersionAvailable:
        channels = (ReleaseChannel.STABLE.value, ReleaseChannel.SNAPSHOT.value)
        artifact_name = self.spec.artifact_name
        constraint = config.effective_constraint

        logger.critical(FATAL_BANNER)
        logger.critical(f"FATAL ERROR: No {artifact_name} version found!")
        if constraint:
            logger.critical(f"Target version: {constraint}")
        logger.critical(
            f"No versions are available on channel(s): {', '.join(channels)}."
        )
        logger.critical("Please check:")
        logger.critical("  1. Your internet connection")
        logger.critical(
            f"  2. Maven repository availability at: {self.spec.repository_url}"
        )
        logger.critical(f"  3. If {artifact_name} supports the required version")
        logger.critical(FATAL_BANNER)

        return NoVersionAvailable(
            f"No {artifact_name} version available",
            artifact_name=artifact_name,
            repository_url=self.spec.repository_url,
            version_constraint=constraint,
            channels=channels,
        )

    def is_latest_version_cached(self) -> bool:
        """
        Report whether the latest eligible version is cached with a valid checksum.

        Never raises for repository problems; anything that prevents the check
        counts as not cached.
        """
        try:
            reference = self.resolve_reference("cache filename")
            if reference is None:
                return False
            expected = self.fetch_checksum(reference)
            return self.cache.is_cached_and_valid(reference.cache_filename, expected)
        except (FetchError, AcquisitionError, ValueError) as e:
            logger.debug(f"Could not check cache for {self.spec.artifact_name}: {e}")
            return False

    def ensure_latest(self) -> Path:
        """
        Make sure the latest eligible artifact is cached and verified, and return its path.

        A cache entry whose digest matches the published checksum is returned
        without downloading the jar. Otherwise the jar is downloaded, verified,
        stored atomically and re-verified from disk.

        Returns:
            Path: Local path of the verified artifact.

        Raises:
            NoVersionAvailable: Neither channel publishes a compatible version (fatal).
            AcquisitionError: Snapshot mode found no snapshot but a release qualifies.
            FetchError: Metadata could not be fetched and no version was found.
            ChecksumUnavailable: The checksum sidecar could not be fetched.
            DownloadFailed: The jar could not be downloaded.
            ChecksumMismatch: The downloaded bytes do not match the published checksum.
            CacheVerificationFailed: The stored file could not be written or re-verified.
        """
        self.state = AcquisitionState.IDLE
        self.last_reference = None
        try:
            return self._ensure_latest()
        except (AcquisitionError, FetchError):
            self._set_state(AcquisitionState.FAILED)
            raise

    def _ensure_latest(self) -> Path:
        config, reference = self._locate("version")
        if reference is None:
            raise self._unavailable_error(config)
        self.last_reference = reference

        artifact_name = reference.artifact_name
        filename = reference.cache_filename
        logger.debug(
            f"Resolved {artifact_name} {reference.file_version} "
            f"from {reference.channel.value} channel"
        )
        try:
            self.cache.get_cache_file_path(filename)
        except ValueError as e:
            raise AcquisitionError(
                "Resolved version cannot be cached safely",
                artifact_name=artifact_name,
                details=str(e),
            ) from e

        expected = self.fetch_checksum(reference)

        self._set_state(AcquisitionState.CHECK_CACHE)
        if self.cache.is_cached_and_valid(filename, expected):
            self._set_state(AcquisitionState.CACHED)
            cached_path = self.cache.retrieve(filename)
            if cached_path is not None:
                logger.debug("Latest version is already cached with valid checksum")
                self._set_state(AcquisitionState.READY)
                return cached_path

        logger.debug("Latest version not cached or checksum invalid, downloading...")
        self._set_state(AcquisitionState.DOWNLOADING)
        jar_data = self.download_jar(reference)

        self._set_state(AcquisitionState.VERIFYING)
        if not self.checksum_store.matches(jar_data, expected):
            actual = self.checksum_store.digest(jar_data)
            logger.error(
                f"Checksum mismatch for {filename}! Expected: {expected}, Got: {actual}"
            )
            raise ChecksumMismatch(
                "Downloaded artifact does not match the published checksum",
                artifact_name=artifact_name,
                expected=expected,
                actual=actual,
            )

        try:
            stored_path = self.cache.store(filename, jar_data)
        except OSError as e:
            raise CacheVerificationFailed(
                "Could not write artifact to cache",
                artifact_name=artifact_name,
                path=str(self.cache.get_cache_file_path(filename)),
                details=str(e),
            ) from e

        if not self.cache.is_cached_and_valid(filename, expected):
            logger.error(f"Cache verification failed for {stored_path}")
            raise CacheVerificationFailed(
                "Stored artifact failed checksum verification",
                artifact_name=artifact_name,
                path=str(stored_path),
            )

        logger.info(f"Downloaded and cached {filename}")
        self._set_state(AcquisitionState.READY)
        return stored_path
