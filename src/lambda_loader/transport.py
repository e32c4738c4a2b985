"""
HTTP transport for lambda-loader.

All repository traffic goes through HttpClient so the resolver, controller and
tests share one seam. Every failure surfaces as FetchError.
"""

import importlib.metadata
import time
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from lambda_loader.constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DISTRIBUTION_NAME,
    RETRY_STATUS_FORCELIST,
)
from lambda_loader.exceptions import FetchError
from lambda_loader.log_utils import logger

_USER_AGENT_CACHE: Optional[str] = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `lambda-loader/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(DISTRIBUTION_NAME)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"lambda-loader/{app_version}"

    return _USER_AGENT_CACHE


class HttpClient:
    """
    Thin wrapper around a requests.Session for repository GETs.

    Transport-level retries are disabled unless `retries` is positive; the
    acquisition pipeline itself never retries a failed request.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        retries: int = DEFAULT_CONNECT_RETRIES,
        session: Optional[requests.Session] = None,
    ):
        """
        Parameters:
            timeout (float): Per-request timeout in seconds.
            retries (int): urllib3 retry budget for connect/read/status errors.
            session (Optional[requests.Session]): Pre-built session to use instead of creating one.
        """
        self.timeout = timeout
        self.retries = max(0, int(retries))
        self.session = session or self._build_session()

    def _build_session(self) -> requests.Session:
        session = requests.Session()
        retry_strategy: Retry = Retry(
            total=self.retries,
            connect=self.retries,
            read=self.retries,
            status=self.retries,
            backoff_factor=DEFAULT_BACKOFF_FACTOR,
            status_forcelist=list(RETRY_STATUS_FORCELIST),
            allowed_methods=frozenset({"GET", "HEAD"}),
            raise_on_status=False,
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers.update({"User-Agent": get_user_agent()})
        return session

    def _get(self, url: str) -> requests.Response:
        logger.debug(f"GET {url}")
        start_time = time.time()
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise FetchError(
                f"Network error fetching {url}", url=url, details=str(e)
            ) from e

        logger.debug(
            "Received HTTP %s for %s in %.2fs",
            response.status_code,
            url,
            time.time() - start_time,
        )
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise FetchError(
                f"HTTP {response.status_code} fetching {url}",
                url=url,
                status_code=response.status_code,
                details=str(e),
            ) from e
        finally:
            response.close()
        return response

    def get_text(self, url: str) -> str:
        """
        Fetch a URL and return its decoded body.

        Raises:
            FetchError: On network failure or a non-2xx status.
        """
        return self._get(url).text

    def get_bytes(self, url: str) -> bytes:
        """
        Fetch a URL and return its raw body.

        Raises:
            FetchError: On network failure or a non-2xx status.
        """
        data = self._get(url).content
        size_mb = len(data) / (1024 * 1024)
        if size_mb >= 1.0:
            logger.debug(f"Fetched {url} ({size_mb:.1f} MB)")
        else:
            logger.debug(f"Fetched {url} ({len(data)} bytes)")
        return data

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()
