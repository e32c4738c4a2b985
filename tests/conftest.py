import hashlib
from typing import Dict, List, Optional, Union

import platformdirs
import pytest
import requests

from lambda_loader.cache import LocalCache
from lambda_loader.exceptions import FetchError
from lambda_loader.models import ReleaseChannel, RepositorySpec

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)

BASE_URL = "https://maven.example.org"
GROUP_PATH = "com/example/app"
ARTIFACT_NAME = "app"


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """
    Register the markers used to categorize tests.
    """
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line(
        "markers", "integration: tests exercising several components together"
    )


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.head = _block_network
    requests.Session.request = _block_network


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point every platformdirs location and the config override at temporary directories.
    """
    base = tmp_path_factory.mktemp("lambda-loader")
    cache_dir = base / "cache"
    config_dir = base / "config"
    log_dir = base / "log"

    for path in (cache_dir, config_dir, log_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.delenv("LAMBDA_LOADER_CONFIG", raising=False)
    monkeypatch.delenv("LAMBDA_LOADER_LOG_LEVEL", raising=False)

    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_log_dir", lambda *_args, **_kwargs: str(log_dir)
    )


def md5_hex(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


class FakeMavenRepository:
    """
    In-memory stand-in for HttpClient serving a Maven repository layout.

    Unknown URLs answer like a 404. Values that are exceptions are raised.
    """

    def __init__(
        self,
        base_url: str = BASE_URL,
        group_path: str = GROUP_PATH,
        artifact_name: str = ARTIFACT_NAME,
    ):
        self.base_url = base_url
        self.group_path = group_path
        self.artifact_name = artifact_name
        self.responses: Dict[str, Union[str, bytes, Exception]] = {}
        self.calls: List[str] = []
        self.closed = False

    # HttpClient interface

    def _lookup(self, url: str) -> Union[str, bytes]:
        self.calls.append(url)
        if url not in self.responses:
            raise FetchError(f"HTTP 404 fetching {url}", url=url, status_code=404)
        value = self.responses[url]
        if isinstance(value, Exception):
            raise value
        return value

    def get_text(self, url: str) -> str:
        value = self._lookup(url)
        return value.decode("utf-8") if isinstance(value, bytes) else value

    def get_bytes(self, url: str) -> bytes:
        value = self._lookup(url)
        return value.encode("utf-8") if isinstance(value, str) else value

    def close(self) -> None:
        self.closed = True

    # Publishing helpers

    def channel_root(self, channel: ReleaseChannel) -> str:
        return f"{self.base_url}/{channel.repository_path}/{self.group_path}"

    def metadata_url(self, channel: ReleaseChannel) -> str:
        return f"{self.channel_root(channel)}/maven-metadata.xml"

    def publish_versions(self, channel: ReleaseChannel, versions: List[str]) -> str:
        listing = "".join(f"<version>{v}</version>" for v in versions)
        self.responses[self.metadata_url(channel)] = (
            '<?xml version="1.0" encoding="UTF-8"?>'
            "<metadata>"
            f"<groupId>{self.group_path.replace('/', '.')}</groupId>"
            f"<artifactId>{self.artifact_name}</artifactId>"
            f"<versioning><versions>{listing}</versions></versioning>"
            "</metadata>"
        )
        return self.metadata_url(channel)

    def release_jar_url(self, version: str) -> str:
        return (
            f"{self.channel_root(ReleaseChannel.STABLE)}/{version}/"
            f"{self.artifact_name}-{version}.jar"
        )

    def snapshot_jar_url(self, base_version: str, timestamp: str, build: str) -> str:
        stripped = base_version.replace("-SNAPSHOT", "")
        return (
            f"{self.channel_root(ReleaseChannel.SNAPSHOT)}/{base_version}/"
            f"{self.artifact_name}-{stripped}-{timestamp}-{build}.jar"
        )

    def publish_jar(
        self, jar_url: str, data: bytes, checksum: Optional[str] = None
    ) -> str:
        self.responses[jar_url] = data
        self.responses[jar_url + ".md5"] = (
            f"{checksum or md5_hex(data)}  {jar_url.rsplit('/', 1)[-1]}\n"
        )
        return jar_url

    def publish_release(self, version: str, data: bytes) -> str:
        return self.publish_jar(self.release_jar_url(version), data)

    def publish_snapshot(
        self,
        base_version: str,
        timestamp: str = "20240101.120000",
        build: str = "1",
        data: Optional[bytes] = None,
    ) -> str:
        per_version_url = (
            f"{self.channel_root(ReleaseChannel.SNAPSHOT)}/{base_version}/"
            "maven-metadata.xml"
        )
        self.responses[per_version_url] = (
            "<metadata>"
            f"<version>{base_version}</version>"
            "<versioning><snapshot>"
            f"<timestamp>{timestamp}</timestamp>"
            f"<buildNumber>{build}</buildNumber>"
            "</snapshot></versioning>"
            "</metadata>"
        )
        jar_url = self.snapshot_jar_url(base_version, timestamp, build)
        if data is not None:
            self.publish_jar(jar_url, data)
        return jar_url

    def fetches_of(self, suffix: str) -> List[str]:
        return [url for url in self.calls if url.endswith(suffix)]


@pytest.fixture
def repo():
    """A FakeMavenRepository for the example artifact."""
    return FakeMavenRepository()


@pytest.fixture
def make_spec():
    """
    Factory for RepositorySpec instances pointing at the fake repository.
    """

    def _make_spec(
        channel: ReleaseChannel = ReleaseChannel.STABLE,
        constraint: Optional[str] = None,
        matching: bool = True,
    ) -> RepositorySpec:
        return RepositorySpec(
            repository_url=BASE_URL,
            group_path=GROUP_PATH,
            artifact_name=ARTIFACT_NAME,
            version_matching_enabled=matching,
            release_mode_provider=lambda: channel,
            version_constraint_provider=lambda: constraint,
        )

    return _make_spec


@pytest.fixture
def cache(tmp_path) -> LocalCache:
    return LocalCache(str(tmp_path / "versions"))
