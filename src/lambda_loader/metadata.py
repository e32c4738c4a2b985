"""
Maven Metadata Resolution

This module fetches and parses maven-metadata.xml documents and picks the
version to acquire for a channel.

Resolution results follow one convention throughout: a value when something
qualifies, None when the repository answered but nothing qualifies, and
FetchError when the repository could not be reached or understood.
"""

import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional

from lambda_loader.constants import MAVEN_METADATA_FILE
from lambda_loader.exceptions import FetchError
from lambda_loader.log_utils import logger

from .models import ReleaseChannel, RepositorySpec, SnapshotDescriptor
from .transport import HttpClient


def extract_platform_version(version: str) -> str:
    """
    Return the platform-version part embedded in an artifact version.

    The part is the text after the first "+" and before the next "-"; a version
    without "+" is used whole. For example "1.1+1.20.0-1" yields "1.20.0".
    """
    _, plus, after_plus = version.partition("+")
    embedded = after_plus if plus else version
    return embedded.split("-", 1)[0]


def normalize_platform_version(value: str) -> str:
    """
    Reduce a platform version to a comparable form.

    Trailing zero components are dropped and the separator dots stripped, so
    "1.20", "1.20.0" and "120" compare equal while "1.21" does not.
    """
    components = value.strip().split(".")
    while len(components) > 1 and components[-1] == "0":
        components.pop()
    return "".join(components)


def filter_versions(versions: Iterable[str], version_constraint: str) -> List[str]:
    """
    Keep versions whose embedded platform version equals the constraint after normalization.

    Document order is preserved and the filter is idempotent.
    """
    target = normalize_platform_version(version_constraint)
    return [
        version
        for version in versions
        if normalize_platform_version(extract_platform_version(version)) == target
    ]


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _parse_document(xml_text: str, url: Optional[str] = None) -> ET.Element:
    try:
        return ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise FetchError(
            "Malformed maven metadata document", url=url, details=str(e)
        ) from e


def _element_texts(root: ET.Element, name: str) -> List[str]:
    return [
        (element.text or "").strip()
        for element in root.iter()
        if _local_name(element.tag) == name
    ]


def parse_versions(xml_text: str, url: Optional[str] = None) -> List[str]:
    """
    Return every <version> value in document order.

    Raises:
        FetchError: If the document is not well-formed XML.
    """
    root = _parse_document(xml_text, url)
    # The root-level <version> of a per-version document is not a listing
    versioning = [
        element for element in root.iter() if _local_name(element.tag) == "versions"
    ]
    scopes = versioning or [root]
    versions: List[str] = []
    for scope in scopes:
        versions.extend(v for v in _element_texts(scope, "version") if v)
    return versions


def parse_snapshot_descriptor(
    xml_text: str, base_version: str, url: Optional[str] = None
) -> Optional[SnapshotDescriptor]:
    """
    Build a SnapshotDescriptor from the first <timestamp> and <buildNumber> elements.

    Returns:
        Optional[SnapshotDescriptor]: None if either element is missing or empty.

    Raises:
        FetchError: If the document is not well-formed XML.
    """
    root = _parse_document(xml_text, url)
    timestamps = _element_texts(root, "timestamp")
    build_numbers = _element_texts(root, "buildNumber")
    if not timestamps or not build_numbers or not timestamps[0] or not build_numbers[0]:
        return None
    return SnapshotDescriptor(
        base_version=base_version,
        timestamp=timestamps[0],
        build_number=build_numbers[0],
    )


class MetadataResolver:
    """
    Resolves the version to acquire from a repository's metadata documents.
    """

    def __init__(self, spec: RepositorySpec, client: HttpClient):
        self.spec = spec
        self.client = client

    def _fetch_document(self, url: str) -> Optional[str]:
        """
        Fetch a metadata document; None when the server reports 404.

        Raises:
            FetchError: For any other network or HTTP failure.
        """
        try:
            return self.client.get_text(url)
        except FetchError as e:
            if e.is_not_found:
                logger.debug(f"No metadata published at {url}")
                return None
            logger.warning(f"Failed to fetch metadata from {url}: {e}")
            raise

    def fetch_versions(self, channel: ReleaseChannel) -> Optional[List[str]]:
        """
        Return the channel's published versions in document order, or None on 404.

        Raises:
            FetchError: On network, HTTP or parse failure.
        """
        url = self.spec.metadata_url(channel)
        xml_text = self._fetch_document(url)
        if xml_text is None:
            return None
        return parse_versions(xml_text, url)

    def resolve_version(
        self,
        channel: ReleaseChannel,
        version_constraint: Optional[str] = None,
        matching_enabled: bool = True,
    ) -> Optional[str]:
        """
        Pick the newest qualifying version published in `channel`.

        When matching is enabled and a constraint is given, only versions whose
        embedded platform version equals the constraint qualify. The last
        qualifying entry in document order wins.

        Returns:
            Optional[str]: The selected version, or None if nothing qualifies.

        Raises:
            FetchError: If the metadata document cannot be fetched or parsed.
        """
        artifact_name = self.spec.artifact_name
        logger.debug(
            f"Resolving {artifact_name} version from {channel.value} metadata"
        )
        versions = self.fetch_versions(channel)
        if versions is None:
            return None

        logger.debug(f"Available {artifact_name} versions: {', '.join(versions)}")
        if matching_enabled and version_constraint:
            logger.debug(f"Target version: {version_constraint}")
            candidates = filter_versions(versions, version_constraint)
        else:
            candidates = versions

        version_msg = f" for version {version_constraint}" if version_constraint else ""
        if not candidates:
            logger.debug(
                f"No {channel.value} {artifact_name} versions found{version_msg}"
            )
            return None

        latest = candidates[-1]
        logger.debug(f"Found latest {artifact_name} version{version_msg}: {latest}")
        return latest

    def resolve_snapshot_descriptor(self, version: str) -> Optional[SnapshotDescriptor]:
        """
        Fetch the per-version snapshot metadata for `version`.

        Returns:
            Optional[SnapshotDescriptor]: None if the document or its timestamp/buildNumber is missing.

        Raises:
            FetchError: If the document cannot be fetched or parsed.
        """
        url = (
            f"{self.spec.channel_root(ReleaseChannel.SNAPSHOT)}/{version}/"
            f"{MAVEN_METADATA_FILE}"
        )
        xml_text = self._fetch_document(url)
        if xml_text is None:
            return None
        descriptor = parse_snapshot_descriptor(xml_text, version, url)
        if descriptor is None:
            logger.debug(f"No timestamp/buildNumber in snapshot metadata {url}")
        return descriptor

    def latest_snapshot(
        self, version_constraint: Optional[str] = None, matching_enabled: bool = True
    ) -> Optional[SnapshotDescriptor]:
        """Resolve the newest snapshot version and its build descriptor."""
        version = self.resolve_version(
            ReleaseChannel.SNAPSHOT, version_constraint, matching_enabled
        )
        if version is None:
            return None
        return self.resolve_snapshot_descriptor(version)
