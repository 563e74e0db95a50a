"""
Constants and exit codes for rpztar.
"""

# Top-level names inside an RPZ container
NAMESPACE = b"DATA"
AUXILIARY_NAMES = (b"METADATA", b"EXTENSIONS")
NESTED_CONTAINER_NAME = b"DATA.tar.gz"

GZIP_MAGIC = b"\x1f\x8b"
COPY_BUFFER_SIZE = 1024 * 1024


class ExitCodes:
    """Exit codes for different error conditions."""
    OK = 0
    UNEXPECTED_ERROR = 1
    USAGE_ERROR = 2
    INVALID_CONTAINER = 3
    UNSAFE_PATH = 4
    FILESYSTEM_ERROR = 5
    OWNERSHIP_ERROR = 6
    ALLOW_LIST_ERROR = 7
    INTERRUPTED = 130
