"""
Checksum computation and comparison against repository-published sidecars.
"""

import hashlib
from pathlib import Path
from typing import Optional, Union

from lambda_loader.constants import (
    CHECKSUM_EXTENSIONS,
    DEFAULT_CHECKSUM_ALGORITHM,
    HASH_READ_CHUNK_SIZE,
)
from lambda_loader.log_utils import logger


def parse_checksum_text(text: Optional[str]) -> Optional[str]:
    """
    Extract the checksum value from a sidecar file body.

    Repository servers may append a filename or other metadata after the digest,
    so only the first whitespace-delimited token is used.

    Returns:
        Optional[str]: The first token, or None for empty or blank text.
    """
    if not text:
        return None
    tokens = text.split()
    return tokens[0] if tokens else None


class ChecksumStore:
    """
    Computes content digests and compares them to published checksums.

    Comparison is exact and case-sensitive: the value is compared as the
    repository publishes it.
    """

    def __init__(self, algorithm: str = DEFAULT_CHECKSUM_ALGORITHM):
        """
        Parameters:
            algorithm (str): One of "md5", "sha1", "sha256", "sha512" (case-insensitive).

        Raises:
            ValueError: If the algorithm has no known sidecar extension.
        """
        normalized = algorithm.lower()
        if normalized not in CHECKSUM_EXTENSIONS:
            raise ValueError(
                f"Unsupported checksum algorithm: {algorithm}. "
                f"Expected one of: {', '.join(sorted(CHECKSUM_EXTENSIONS))}"
            )
        self.algorithm = normalized

    @property
    def extension(self) -> str:
        """Sidecar suffix appended to the artifact URL, e.g. '.md5'."""
        return CHECKSUM_EXTENSIONS[self.algorithm]

    def _new_hash(self):
        return hashlib.new(self.algorithm)

    def digest(self, data: bytes) -> str:
        """Return the lowercase hex digest of `data`."""
        hash_obj = self._new_hash()
        hash_obj.update(data)
        return hash_obj.hexdigest()

    def matches(self, data: bytes, expected: Optional[str]) -> bool:
        if not expected:
            return False
        return self.digest(data) == expected

    def file_digest(self, file_path: Union[str, Path]) -> Optional[str]:
        """
        Compute the hex digest of a file without loading it into memory.

        Returns:
            Optional[str]: The digest, or None if the file cannot be opened or read.
        """
        try:
            hash_obj = self._new_hash()
            with open(file_path, "rb") as f:
                for chunk in iter(lambda: f.read(HASH_READ_CHUNK_SIZE), b""):
                    hash_obj.update(chunk)
            return hash_obj.hexdigest()
        except OSError as e:
            logger.debug(f"Error calculating {self.algorithm} for {file_path}: {e}")
            return None

    def file_matches(self, file_path: Union[str, Path], expected: Optional[str]) -> bool:
        if not expected:
            return False
        actual = self.file_digest(file_path)
        return actual is not None and actual == expected
