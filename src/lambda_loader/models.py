"""
Core Data Structures for lambda-loader

This module defines the data model shared by the resolver, locator, cache and
controller: release channels, snapshot descriptors, artifact references and
the repository capability record that parameterizes one acquisition policy.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from lambda_loader.constants import (
    CHECKSUM_EXTENSIONS,
    DEFAULT_CHECKSUM_ALGORITHM,
    JAR_EXTENSION,
    MAVEN_METADATA_FILE,
    RELEASES_PATH,
    SNAPSHOT_SUFFIX,
    SNAPSHOTS_PATH,
)


class ReleaseChannel(str, Enum):
    """Publication track an artifact is resolved from."""

    STABLE = "stable"
    SNAPSHOT = "snapshot"

    @property
    def repository_path(self) -> str:
        """Top-level repository directory for this channel."""
        return RELEASES_PATH if self is ReleaseChannel.STABLE else SNAPSHOTS_PATH


class AcquisitionState(str, Enum):
    """States of one VersionAcquisitionController.ensure_latest() run."""

    IDLE = "idle"
    CHECK_CACHE = "check_cache"
    CACHED = "cached"
    DOWNLOADING = "downloading"
    VERIFYING = "verifying"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class SnapshotDescriptor:
    """Identifies one published snapshot build."""

    base_version: str
    """Snapshot directory version, e.g. '1.0-SNAPSHOT'"""

    timestamp: str
    """Build timestamp from the per-version metadata, e.g. '20240101.120000'"""

    build_number: str
    """Build number from the per-version metadata"""

    @property
    def stripped_version(self) -> str:
        """Base version without the -SNAPSHOT suffix."""
        return self.base_version.replace(SNAPSHOT_SUFFIX, "")

    @property
    def unique_version(self) -> str:
        """Timestamped version used in snapshot file names."""
        return f"{self.stripped_version}-{self.timestamp}-{self.build_number}"


@dataclass(frozen=True)
class ArtifactReference:
    """A fully resolved artifact: enough to derive every URL and the cache filename."""

    repository_url: str
    """Base repository URL without trailing slash"""

    group_path: str
    """Group path in slash form, e.g. 'com/lambda/lambda'"""

    artifact_name: str
    """Artifact id, e.g. 'lambda'"""

    resolved_version: str
    """Version directory the jar lives in"""

    channel: ReleaseChannel
    """Channel the version was resolved from"""

    snapshot: Optional[SnapshotDescriptor] = None
    """Snapshot build details, only set for the snapshot channel"""

    checksum_algorithm: str = DEFAULT_CHECKSUM_ALGORITHM
    """Algorithm of the checksum sidecar to fetch"""

    @property
    def file_version(self) -> str:
        if self.snapshot is not None:
            return self.snapshot.unique_version
        return self.resolved_version

    @property
    def cache_filename(self) -> str:
        return f"{self.artifact_name}-{self.file_version}{JAR_EXTENSION}"

    @property
    def jar_url(self) -> str:
        return "/".join(
            (
                self.repository_url.rstrip("/"),
                self.channel.repository_path,
                self.group_path.strip("/"),
                self.resolved_version,
                self.cache_filename,
            )
        )

    @property
    def checksum_url(self) -> str:
        return self.jar_url + CHECKSUM_EXTENSIONS[self.checksum_algorithm]


@dataclass(frozen=True)
class AcquisitionConfig:
    """Per-run acquisition settings, evaluated from a RepositorySpec's providers."""

    channel: ReleaseChannel = ReleaseChannel.STABLE
    version_constraint: Optional[str] = None
    version_matching_enabled: bool = True

    @property
    def effective_constraint(self) -> Optional[str]:
        """The constraint actually applied when filtering versions."""
        if self.version_matching_enabled and self.version_constraint:
            return self.version_constraint
        return None


def _no_constraint() -> Optional[str]:
    return None


@dataclass(frozen=True)
class RepositorySpec:
    """
    Capability record for one acquisition policy.

    The providers are called at the start of every operation so a caller can
    change its release mode or host version between acquisitions.
    """

    repository_url: str
    group_path: str
    artifact_name: str
    version_matching_enabled: bool
    release_mode_provider: Callable[[], ReleaseChannel]
    version_constraint_provider: Callable[[], Optional[str]] = _no_constraint
    checksum_algorithm: str = DEFAULT_CHECKSUM_ALGORITHM

    def acquisition_config(self) -> AcquisitionConfig:
        return AcquisitionConfig(
            channel=self.release_mode_provider(),
            version_constraint=self.version_constraint_provider(),
            version_matching_enabled=self.version_matching_enabled,
        )

    def metadata_url(self, channel: ReleaseChannel) -> str:
        return f"{self.channel_root(channel)}/{MAVEN_METADATA_FILE}"

    def channel_root(self, channel: ReleaseChannel) -> str:
        return "/".join(
            (
                self.repository_url.rstrip("/"),
                channel.repository_path,
                self.group_path.strip("/"),
            )
        )
