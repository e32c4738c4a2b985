"""
Tests for ArtifactReference derivation and the stable to snapshot fallback.
"""

import pytest

from lambda_loader.exceptions import FetchError
from lambda_loader.locator import ArtifactLocator
from lambda_loader.metadata import MetadataResolver
from lambda_loader.models import (
    AcquisitionConfig,
    ArtifactReference,
    ReleaseChannel,
    SnapshotDescriptor,
)

pytestmark = [pytest.mark.unit]

BASE_URL = "https://maven.example.org"
GROUP_PATH = "com/example/app"
ARTIFACT_NAME = "app"


def make_locator(repo, spec):
    return ArtifactLocator(spec, MetadataResolver(spec, repo))


class TestReferenceDerivation:
    """Test pure URL and filename derivation."""

    def test_release_reference(self, repo, make_spec):
        locator = make_locator(repo, make_spec())
        reference = locator.release_reference("1.1+1.20.0-1")

        assert reference.jar_url == (
            f"{BASE_URL}/releases/{GROUP_PATH}/1.1+1.20.0-1/app-1.1+1.20.0-1.jar"
        )
        assert reference.checksum_url == reference.jar_url + ".md5"
        assert reference.cache_filename == "app-1.1+1.20.0-1.jar"
        assert reference.file_version == "1.1+1.20.0-1"
        assert repo.calls == []

    def test_snapshot_reference(self, repo, make_spec):
        locator = make_locator(repo, make_spec())
        descriptor = SnapshotDescriptor("1.0-SNAPSHOT", "20240101.120000", "5")
        reference = locator.snapshot_reference(descriptor)

        assert reference.jar_url == (
            f"{BASE_URL}/snapshots/{GROUP_PATH}/1.0-SNAPSHOT/"
            "app-1.0-20240101.120000-5.jar"
        )
        assert reference.cache_filename == "app-1.0-20240101.120000-5.jar"
        assert reference.jar_url.endswith("/" + reference.cache_filename)
        assert reference.file_version == "1.0-20240101.120000-5"

    def test_cache_filenames_are_distinct_per_build(self):
        def snapshot(build):
            return ArtifactReference(
                repository_url=BASE_URL,
                group_path=GROUP_PATH,
                artifact_name=ARTIFACT_NAME,
                resolved_version="1.0-SNAPSHOT",
                channel=ReleaseChannel.SNAPSHOT,
                snapshot=SnapshotDescriptor("1.0-SNAPSHOT", "20240101.120000", build),
            )

        assert snapshot("1").cache_filename != snapshot("2").cache_filename

    def test_checksum_extension_follows_algorithm(self):
        reference = ArtifactReference(
            repository_url=BASE_URL + "/",
            group_path=GROUP_PATH,
            artifact_name=ARTIFACT_NAME,
            resolved_version="1.0",
            channel=ReleaseChannel.STABLE,
            checksum_algorithm="sha1",
        )
        assert reference.jar_url == f"{BASE_URL}/releases/{GROUP_PATH}/1.0/app-1.0.jar"
        assert reference.checksum_url.endswith("app-1.0.jar.sha1")


class TestLocate:
    """Test channel selection and fallback."""

    def test_stable_release_found(self, repo, make_spec):
        repo.publish_versions(ReleaseChannel.STABLE, ["1.0", "1.1"])
        locator = make_locator(repo, make_spec(matching=False))

        reference = locator.locate(AcquisitionConfig(ReleaseChannel.STABLE))

        assert reference.channel is ReleaseChannel.STABLE
        assert reference.resolved_version == "1.1"
        assert repo.fetches_of("maven-metadata.xml") == [
            repo.metadata_url(ReleaseChannel.STABLE)
        ]

    def test_stable_falls_back_to_snapshot(self, repo, make_spec, mocker):
        """No stable build for the host version: the snapshot build is used."""
        mock_logger = mocker.patch("lambda_loader.locator.logger")
        repo.publish_versions(ReleaseChannel.STABLE, ["1.0+1.21-0"])
        repo.publish_versions(ReleaseChannel.SNAPSHOT, ["1.1+1.20-SNAPSHOT"])
        jar_url = repo.publish_snapshot("1.1+1.20-SNAPSHOT", "20240301.000000", "2")
        locator = make_locator(repo, make_spec())
        config = AcquisitionConfig(ReleaseChannel.STABLE, "1.20", True)

        reference = locator.locate(config, "jar")

        assert reference.channel is ReleaseChannel.SNAPSHOT
        assert reference.jar_url == jar_url
        assert reference.checksum_url == jar_url + ".md5"
        assert reference.cache_filename == jar_url.rsplit("/", 1)[-1]
        mock_logger.warning.assert_called_once_with(
            "No stable app jar found for version 1.20, falling back to snapshot"
        )

    def test_missing_release_metadata_falls_back_to_snapshot(self, repo, make_spec):
        repo.publish_versions(ReleaseChannel.SNAPSHOT, ["1.0-SNAPSHOT"])
        jar_url = repo.publish_snapshot("1.0-SNAPSHOT", "20240110.000000", "9")
        locator = make_locator(repo, make_spec(matching=False))

        reference = locator.locate(AcquisitionConfig(ReleaseChannel.STABLE))

        assert reference.jar_url == jar_url
        assert repo.calls[0] == repo.metadata_url(ReleaseChannel.STABLE)

    def test_stable_fetch_error_falls_back_to_snapshot(self, repo, make_spec):
        url = repo.metadata_url(ReleaseChannel.STABLE)
        repo.responses[url] = FetchError("timeout", url=url)
        repo.publish_versions(ReleaseChannel.SNAPSHOT, ["1.0-SNAPSHOT"])
        repo.publish_snapshot("1.0-SNAPSHOT")
        locator = make_locator(repo, make_spec(matching=False))

        reference = locator.locate(AcquisitionConfig(ReleaseChannel.STABLE))

        assert reference.channel is ReleaseChannel.SNAPSHOT

    def test_stable_fetch_error_reraised_when_snapshot_empty(self, repo, make_spec):
        url = repo.metadata_url(ReleaseChannel.STABLE)
        error = FetchError("connection refused", url=url)
        repo.responses[url] = error
        locator = make_locator(repo, make_spec(matching=False))

        with pytest.raises(FetchError) as exc_info:
            locator.locate(AcquisitionConfig(ReleaseChannel.STABLE))
        assert exc_info.value is error

    def test_not_found_everywhere(self, repo, make_spec):
        locator = make_locator(repo, make_spec())
        assert locator.locate(AcquisitionConfig(ReleaseChannel.STABLE, "1.20")) is None

    def test_snapshot_mode_never_consults_releases(self, repo, make_spec):
        repo.publish_versions(ReleaseChannel.STABLE, ["1.0"])
        locator = make_locator(repo, make_spec(ReleaseChannel.SNAPSHOT))

        reference = locator.locate(AcquisitionConfig(ReleaseChannel.SNAPSHOT))

        assert reference is None
        assert all("/releases/" not in url for url in repo.calls)

    def test_snapshot_mode_fetch_error_propagates(self, repo, make_spec):
        url = repo.metadata_url(ReleaseChannel.SNAPSHOT)
        repo.responses[url] = FetchError("HTTP 500", url=url, status_code=500)
        locator = make_locator(repo, make_spec(ReleaseChannel.SNAPSHOT))

        with pytest.raises(FetchError):
            locator.locate(AcquisitionConfig(ReleaseChannel.SNAPSHOT))
