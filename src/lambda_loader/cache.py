"""
Local Artifact Cache for lambda-loader

This module maps artifact filenames to files in a local cache directory.
Entries are written atomically and are only trusted after their checksum
matches the value the repository currently publishes.
"""

import os
import tempfile
from pathlib import Path
from typing import List, Optional

import platformdirs

from lambda_loader.constants import APP_NAME, CACHE_VERSIONS_DIR, JAR_EXTENSION
from lambda_loader.log_utils import logger

from .checksum import ChecksumStore


def _sanitize_path_component(component: Optional[str]) -> Optional[str]:
    """
    Validate and sanitize a single filesystem path component.

    Returns None when the input is None or unsafe: empty after trimming, "." or
    "..", absolute, containing a null byte, or containing a path separator.
    """
    if component is None:
        return None

    sanitized = component.strip()
    if not sanitized or sanitized in {".", ".."}:
        return None

    if os.path.isabs(sanitized):
        return None

    if "\x00" in sanitized:
        return None

    for separator in (os.sep, os.altsep, "/"):
        if separator and separator in sanitized:
            return None

    return sanitized


def _atomic_write_bytes(file_path: Path, data: bytes) -> None:
    """
    Write bytes to `file_path` via a temporary sibling file and os.replace.

    Readers see either the previous content or the complete new content. The
    temporary file is unique per call, so writers of different filenames never
    interfere.

    Raises:
        OSError: If the temporary file cannot be created, written or moved into place.
    """
    temp_fd, temp_path = tempfile.mkstemp(
        dir=str(file_path.parent), prefix=".tmp-", suffix=".part"
    )
    try:
        with os.fdopen(temp_fd, "wb") as temp_f:
            temp_f.write(data)
            temp_f.flush()
            os.fsync(temp_f.fileno())
        os.replace(temp_path, file_path)
    finally:
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError as e:
                logger.debug(f"Could not remove temporary file {temp_path}: {e}")


class LocalCache:
    """
    Directory-backed store of downloaded artifacts.

    Cache entries never expire on their own; validity is re-checked against
    the published checksum on every acquisition.
    """

    def __init__(
        self,
        cache_dir: Optional[str] = None,
        checksum_store: Optional[ChecksumStore] = None,
    ):
        """
        Parameters:
            cache_dir (Optional[str]): Directory to store artifacts in. If None, the platform user cache directory is used.
            checksum_store (Optional[ChecksumStore]): Digest implementation for validation; defaults to MD5.
        """
        self.cache_dir = Path(cache_dir or self._get_default_cache_dir())
        self.checksum_store = checksum_store or ChecksumStore()
        self._ensure_cache_dir_exists()

    def _get_default_cache_dir(self) -> str:
        return os.path.join(platformdirs.user_cache_dir(APP_NAME), CACHE_VERSIONS_DIR)

    def _ensure_cache_dir_exists(self) -> None:
        """
        Raises:
            OSError: If the directory cannot be created or is otherwise inaccessible.
        """
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Could not create cache directory {self.cache_dir}: {e}")
            raise

    def get_cache_file_path(self, filename: str) -> Path:
        """
        Raises:
            ValueError: If `filename` is not a single safe path component.
        """
        safe_name = _sanitize_path_component(filename)
        if safe_name is None:
            raise ValueError(
                f"Unsafe cache filename {filename!r}; aborting to avoid path traversal"
            )
        return self.cache_dir / safe_name

    def is_cached_and_valid(self, filename: str, expected_checksum: str) -> bool:
        """
        Determine whether `filename` is cached and its digest equals `expected_checksum`.

        Returns:
            bool: `False` if the file is missing, unreadable or its digest differs.
        """
        file_path = self.get_cache_file_path(filename)
        if not file_path.is_file():
            logger.debug(f"{filename} is not cached")
            return False

        if self.checksum_store.file_matches(file_path, expected_checksum):
            logger.debug(f"Checksum verified for cached {filename}")
            return True

        logger.info(f"Cached {filename} does not match the published checksum")
        return False

    def store(self, filename: str, data: bytes) -> Path:
        """
        Atomically write `data` under `filename`, replacing any previous content.

        Returns:
            Path: Location of the stored file.

        Raises:
            OSError: If the write fails; the previous content, if any, is left intact.
        """
        file_path = self.get_cache_file_path(filename)
        self._ensure_cache_dir_exists()
        try:
            _atomic_write_bytes(file_path, data)
        except OSError as e:
            logger.error(f"Could not write {file_path}: {e}")
            raise
        logger.debug(f"Stored {filename} ({len(data)} bytes) in {self.cache_dir}")
        return file_path

    def retrieve(self, filename: str) -> Optional[Path]:
        file_path = self.get_cache_file_path(filename)
        return file_path if file_path.is_file() else None

    def remove(self, filename: str) -> bool:
        """
        Delete a cached file if present.

        Returns:
            bool: `True` if a file was removed, `False` otherwise.
        """
        file_path = self.get_cache_file_path(filename)
        try:
            file_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Error removing cached file {file_path}: {e}")
            return False
        logger.debug(f"Removed cached file {file_path}")
        return True

    def list_cached(self, prefix: str = "") -> List[Path]:
        """Return cached jar files whose names start with `prefix`, sorted by name."""
        if not self.cache_dir.is_dir():
            return []
        return sorted(
            entry
            for entry in self.cache_dir.iterdir()
            if entry.is_file()
            and entry.name.startswith(prefix)
            and entry.name.endswith(JAR_EXTENSION)
        )

    def prune(self, prefix: str, keep: int) -> List[Path]:
        """
        Remove all but the `keep` most recently modified entries starting with `prefix`.

        Returns:
            List[Path]: The files that were removed.
        """
        entries = sorted(
            self.list_cached(prefix),
            key=lambda entry: entry.stat().st_mtime,
            reverse=True,
        )
        removed: List[Path] = []
        for entry in entries[max(0, keep) :]:
            if self.remove(entry.name):
                removed.append(entry)
        if removed:
            logger.info(
                f"Pruned {len(removed)} old cached file(s) matching {prefix!r}"
            )
        return removed

    def clear(self) -> int:
        """Remove every cached jar. Returns the number of files removed."""
        return len(self.prune("", 0))
