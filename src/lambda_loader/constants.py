"""
Constants and configuration values for lambda-loader.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the loader.
"""

# Maven repositories
CLIENT_MAVEN_URL = "https://maven.lambda-client.org"
LOADER_MAVEN_URL = "https://maven.thcfree.dev"
CLIENT_GROUP_PATH = "com/lambda/lambda"
CLIENT_ARTIFACT_NAME = "lambda"
LOADER_GROUP_PATH = "com/lambda/loader"
LOADER_ARTIFACT_NAME = "loader"

# Maven layout
RELEASES_PATH = "releases"
SNAPSHOTS_PATH = "snapshots"
MAVEN_METADATA_FILE = "maven-metadata.xml"
SNAPSHOT_SUFFIX = "-SNAPSHOT"
JAR_EXTENSION = ".jar"

# Checksums
DEFAULT_CHECKSUM_ALGORITHM = "md5"
CHECKSUM_EXTENSIONS = {
    "md5": ".md5",
    "sha1": ".sha1",
    "sha256": ".sha256",
    "sha512": ".sha512",
}
HASH_READ_CHUNK_SIZE = 4096

# Network settings (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CONNECT_RETRIES = 0
DEFAULT_BACKOFF_FACTOR = 0.3
RETRY_STATUS_FORCELIST = (408, 429, 500, 502, 503, 504)

# File and directory names
APP_NAME = "lambda-loader"
DISTRIBUTION_NAME = "lambda-loader"
CACHE_VERSIONS_DIR = "versions"
CONFIG_FILE_NAME = "loader.yaml"
LOG_FILE_NAME = "lambda-loader.log"

# Environment variables
LOG_LEVEL_ENV_VAR = "LAMBDA_LOADER_LOG_LEVEL"
CONFIG_FILE_ENV_VAR = "LAMBDA_LOADER_CONFIG"

# Default configuration values
DEFAULT_RELEASE_MODE = "stable"
DEFAULT_CONFIG = {
    "CLIENT_RELEASE_MODE": DEFAULT_RELEASE_MODE,
    "LOADER_RELEASE_MODE": DEFAULT_RELEASE_MODE,
    "DEBUG": False,
    "CACHE_DIR": None,
    "HTTP_TIMEOUT": DEFAULT_REQUEST_TIMEOUT,
    "HTTP_RETRIES": DEFAULT_CONNECT_RETRIES,
    "CHECKSUM_ALGORITHM": DEFAULT_CHECKSUM_ALGORITHM,
    "CLIENT_MAVEN_URL": CLIENT_MAVEN_URL,
    "LOADER_MAVEN_URL": LOADER_MAVEN_URL,
    "LOG_FILE": False,
}

# CLI exit codes
EXIT_OK = 0
EXIT_ACQUISITION_FAILED = 1
EXIT_NO_VERSION_AVAILABLE = 2

# Logging configuration
LOGGER_NAME = "lambda_loader"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5
FATAL_BANNER = "=" * 59
