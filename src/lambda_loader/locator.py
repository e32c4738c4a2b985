"""
Artifact Location

This module turns resolved versions into ArtifactReferences and applies the
channel policy: a stable request falls back to snapshot when the release
channel has nothing usable, a snapshot request never falls back to stable.
"""

from typing import Optional

from lambda_loader.exceptions import FetchError
from lambda_loader.log_utils import logger

from .metadata import MetadataResolver
from .models import (
    AcquisitionConfig,
    ArtifactReference,
    ReleaseChannel,
    RepositorySpec,
    SnapshotDescriptor,
)


class ArtifactLocator:
    """
    Derives artifact references for a repository.

    `release_reference` and `snapshot_reference` are pure; `locate` consults
    the resolver and applies the fallback policy.
    """

    def __init__(self, spec: RepositorySpec, resolver: MetadataResolver):
        self.spec = spec
        self.resolver = resolver

    def release_reference(self, version: str) -> ArtifactReference:
        return ArtifactReference(
            repository_url=self.spec.repository_url,
            group_path=self.spec.group_path,
            artifact_name=self.spec.artifact_name,
            resolved_version=version,
            channel=ReleaseChannel.STABLE,
            checksum_algorithm=self.spec.checksum_algorithm,
        )

    def snapshot_reference(self, descriptor: SnapshotDescriptor) -> ArtifactReference:
        return ArtifactReference(
            repository_url=self.spec.repository_url,
            group_path=self.spec.group_path,
            artifact_name=self.spec.artifact_name,
            resolved_version=descriptor.base_version,
            channel=ReleaseChannel.SNAPSHOT,
            snapshot=descriptor,
            checksum_algorithm=self.spec.checksum_algorithm,
        )

    def locate_release(self, config: AcquisitionConfig) -> Optional[ArtifactReference]:
        version = self.resolver.resolve_version(
            ReleaseChannel.STABLE,
            config.version_constraint,
            config.version_matching_enabled,
        )
        if version is None:
            return None
        return self.release_reference(version)

    def locate_snapshot(self, config: AcquisitionConfig) -> Optional[ArtifactReference]:
        descriptor = self.resolver.latest_snapshot(
            config.version_constraint, config.version_matching_enabled
        )
        if descriptor is None:
            return None
        return self.snapshot_reference(descriptor)

    def locate(
        self, config: AcquisitionConfig, subject: str = "version"
    ) -> Optional[ArtifactReference]:
        """
        Resolve the artifact reference for `config.channel`.

        For STABLE, a release channel that publishes nothing qualifying, or
        cannot be fetched, is logged as a warning and the snapshot channel is
        tried instead. For SNAPSHOT only the snapshot channel is consulted.

        Parameters:
            config (AcquisitionConfig): Channel and version constraint for this attempt.
            subject (str): What the caller is resolving, used in the fallback warning.

        Returns:
            Optional[ArtifactReference]: None when every consulted channel reports nothing qualifying.

        Raises:
            FetchError: When no reference was found and a consulted channel could not be fetched.
        """
        if config.channel is ReleaseChannel.SNAPSHOT:
            return self.locate_snapshot(config)

        release_error: Optional[FetchError] = None
        try:
            reference = self.locate_release(config)
        except FetchError as e:
            release_error = e
            reference = None
        if reference is not None:
            return reference

        constraint = config.effective_constraint
        version_msg = f" for version {constraint}" if constraint else ""
        logger.warning(
            f"No stable {self.spec.artifact_name} {subject} found{version_msg}, "
            "falling back to snapshot"
        )
        reference = self.locate_snapshot(config)
        if reference is None and release_error is not None:
            raise release_error
        return reference
