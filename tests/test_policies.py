"""
Tests for the client and loader acquisition policies and the update check.
"""

import importlib.metadata

import pytest

from lambda_loader.constants import (
    CLIENT_ARTIFACT_NAME,
    CLIENT_GROUP_PATH,
    CLIENT_MAVEN_URL,
    DEFAULT_CONFIG,
    LOADER_ARTIFACT_NAME,
    LOADER_GROUP_PATH,
    LOADER_MAVEN_URL,
)
from lambda_loader.controller import VersionAcquisitionController
from lambda_loader.exceptions import ConfigurationError, FetchError
from lambda_loader.models import ReleaseChannel
from lambda_loader.policies import (
    check_for_update,
    client_spec,
    get_current_loader_version,
    loader_spec,
)

pytestmark = [pytest.mark.unit]


@pytest.fixture
def config():
    return dict(DEFAULT_CONFIG)


class TestClientSpec:
    """Test the host-version matched client policy."""

    def test_defaults(self, config):
        spec = client_spec(config, "1.20.4")

        assert spec.repository_url == CLIENT_MAVEN_URL
        assert spec.group_path == CLIENT_GROUP_PATH
        assert spec.artifact_name == CLIENT_ARTIFACT_NAME
        assert spec.version_matching_enabled is True
        assert spec.checksum_algorithm == "md5"

        acquisition = spec.acquisition_config()
        assert acquisition.channel is ReleaseChannel.STABLE
        assert acquisition.version_constraint == "1.20.4"
        assert acquisition.effective_constraint == "1.20.4"

    def test_release_mode_is_read_per_acquisition(self, config):
        spec = client_spec(config, "1.20")
        assert spec.acquisition_config().channel is ReleaseChannel.STABLE

        config["CLIENT_RELEASE_MODE"] = "SNAPSHOT"
        assert spec.acquisition_config().channel is ReleaseChannel.SNAPSHOT

    def test_callable_platform_version(self, config):
        versions = iter(["1.20", "1.21"])
        spec = client_spec(config, lambda: next(versions))

        assert spec.acquisition_config().version_constraint == "1.20"
        assert spec.acquisition_config().version_constraint == "1.21"

    def test_repository_override(self, config):
        spec = client_spec(config, None, repository_url="https://mirror.example.org")
        assert spec.repository_url == "https://mirror.example.org"
        assert spec.acquisition_config().effective_constraint is None

    def test_invalid_release_mode(self, config):
        config["CLIENT_RELEASE_MODE"] = "nightly"
        spec = client_spec(config, "1.20")
        with pytest.raises(ConfigurationError):
            spec.acquisition_config()


class TestLoaderSpec:
    """Test the loader self-update policy."""

    def test_defaults(self, config):
        spec = loader_spec(config)

        assert spec.repository_url == LOADER_MAVEN_URL
        assert spec.group_path == LOADER_GROUP_PATH
        assert spec.artifact_name == LOADER_ARTIFACT_NAME
        assert spec.version_matching_enabled is False
        assert spec.acquisition_config().effective_constraint is None

    def test_uses_loader_release_mode(self, config):
        config["LOADER_RELEASE_MODE"] = "snapshot"
        assert loader_spec(config).acquisition_config().channel is (
            ReleaseChannel.SNAPSHOT
        )

    def test_loader_takes_newest_published(self, config, repo, cache):
        repo.group_path = LOADER_GROUP_PATH
        repo.artifact_name = LOADER_ARTIFACT_NAME
        repo.publish_versions(ReleaseChannel.STABLE, ["0.1.0", "0.3.0", "0.2.0"])
        spec = loader_spec(config, repository_url=repo.base_url)
        controller = VersionAcquisitionController(spec, cache=cache, client=repo)

        assert controller.resolve_version() == "0.2.0"
        assert controller.resolve_jar_url() == repo.release_jar_url("0.2.0")


class TestCheckForUpdate:
    """Test check_for_update()."""

    @pytest.fixture
    def loader_repo(self, repo):
        repo.group_path = LOADER_GROUP_PATH
        repo.artifact_name = LOADER_ARTIFACT_NAME
        return repo

    @pytest.fixture
    def make_controller(self, config, loader_repo, cache):
        def _make(channel="stable"):
            config["LOADER_RELEASE_MODE"] = channel
            spec = loader_spec(config, repository_url=loader_repo.base_url)
            return VersionAcquisitionController(spec, cache=cache, client=loader_repo)

        return _make

    def test_update_available(self, loader_repo, make_controller):
        loader_repo.publish_versions(ReleaseChannel.STABLE, ["0.1.0", "0.2.0"])
        assert check_for_update(make_controller(), "0.1.0") == "0.2.0"

    def test_up_to_date(self, loader_repo, make_controller, mocker):
        mock_logger = mocker.patch("lambda_loader.policies.logger")
        loader_repo.publish_versions(ReleaseChannel.STABLE, ["0.1.0", "0.2.0"])

        assert check_for_update(make_controller(), "0.2.0") is None
        mock_logger.info.assert_called_once_with("Loader is up to date: 0.2.0")

    def test_unknown_current_version(self, loader_repo, make_controller, mocker):
        mocker.patch(
            "lambda_loader.policies.get_current_loader_version", return_value=None
        )
        loader_repo.publish_versions(ReleaseChannel.STABLE, ["0.2.0"])
        assert check_for_update(make_controller()) == "0.2.0"

    def test_snapshot_channel_compares_base_version(self, loader_repo, make_controller):
        """The metadata version is compared, not the timestamped build."""
        loader_repo.publish_versions(ReleaseChannel.SNAPSHOT, ["0.3.0-SNAPSHOT"])
        loader_repo.publish_snapshot("0.3.0-SNAPSHOT", "20240501.080000", "4")
        controller = make_controller("snapshot")

        assert check_for_update(controller, "0.3.0-SNAPSHOT") is None
        assert check_for_update(controller, "0.2.0") == "0.3.0-SNAPSHOT"

    def test_stable_channel_does_not_fall_back(
        self, loader_repo, make_controller, mocker
    ):
        mock_logger = mocker.patch("lambda_loader.policies.logger")
        loader_repo.publish_versions(ReleaseChannel.SNAPSHOT, ["0.3.0-SNAPSHOT"])
        loader_repo.publish_snapshot("0.3.0-SNAPSHOT")

        assert check_for_update(make_controller(), "0.1.0") is None
        mock_logger.warning.assert_called_once_with(
            "Could not fetch latest loader version"
        )
        assert loader_repo.metadata_url(ReleaseChannel.SNAPSHOT) not in (
            loader_repo.calls
        )

    def test_fetch_error_is_not_raised(self, loader_repo, make_controller):
        url = loader_repo.metadata_url(ReleaseChannel.STABLE)
        loader_repo.responses[url] = FetchError("offline", url=url)
        assert check_for_update(make_controller(), "0.1.0") is None


class TestGetCurrentLoaderVersion:
    """Test installed version detection."""

    def test_installed(self, mocker):
        mocker.patch(
            "lambda_loader.policies.importlib.metadata.version", return_value="0.1.0"
        )
        assert get_current_loader_version() == "0.1.0"

    def test_not_installed(self, mocker):
        mocker.patch(
            "lambda_loader.policies.importlib.metadata.version",
            side_effect=importlib.metadata.PackageNotFoundError("lambda-loader"),
        )
        assert get_current_loader_version() is None
