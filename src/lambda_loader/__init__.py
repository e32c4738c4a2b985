"""
lambda-loader - verified acquisition of Maven-hosted artifacts

Core Components:
- metadata: maven-metadata.xml parsing and version selection
- locator: URL/filename derivation and stable to snapshot fallback
- checksum: digest computation and sidecar parsing
- cache: atomic, checksum-validated local artifact cache
- controller: the ensure_latest() orchestration
- policies: client (version matched) and loader self-update specs
"""

from .cache import LocalCache
from .checksum import ChecksumStore, parse_checksum_text
from .controller import VersionAcquisitionController
from .exceptions import (
    AcquisitionError,
    CacheVerificationFailed,
    ChecksumMismatch,
    ChecksumUnavailable,
    DownloadFailed,
    FetchError,
    LoaderError,
    NoVersionAvailable,
)
from .locator import ArtifactLocator
from .metadata import MetadataResolver
from .models import (
    AcquisitionConfig,
    AcquisitionState,
    ArtifactReference,
    ReleaseChannel,
    RepositorySpec,
    SnapshotDescriptor,
)
from .policies import check_for_update, client_spec, loader_spec
from .transport import HttpClient

__all__ = [
    # Data model
    "AcquisitionConfig",
    "AcquisitionState",
    "ArtifactReference",
    "ReleaseChannel",
    "RepositorySpec",
    "SnapshotDescriptor",
    # Components
    "ArtifactLocator",
    "ChecksumStore",
    "HttpClient",
    "LocalCache",
    "MetadataResolver",
    "VersionAcquisitionController",
    "parse_checksum_text",
    # Policies
    "check_for_update",
    "client_spec",
    "loader_spec",
    # Errors
    "AcquisitionError",
    "CacheVerificationFailed",
    "ChecksumMismatch",
    "ChecksumUnavailable",
    "DownloadFailed",
    "FetchError",
    "LoaderError",
    "NoVersionAvailable",
]
