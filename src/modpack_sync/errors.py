"""Custom exceptions for modpack-sync.

This module defines typed exceptions so callers can tell a missing upstream
archive apart from a flaky network or a broken local disk. Anything raised
during staging or fingerprinting means "update status unknown".
"""


class SyncError(RuntimeError):
    """Base class for all modpack-sync errors."""
    pass


# Fetch Errors
class FetchError(SyncError):
    """Base class for remote archive fetch errors."""
    pass


class NetworkError(FetchError):
    """Fetch unreachable, timed out, or answered with an error status."""

    def __init__(self, url: str, detail: str, status_code: int = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Could not download {url}: {detail}")


class NotFoundError(FetchError):
    """Remote archive does not exist (404)."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Mod archive not found upstream: {url}")


# Archive Errors
class ArchiveFormatError(SyncError):
    """Archive could not be unpacked into a usable payload tree."""

    def __init__(self, archive: str, detail: str):
        self.archive = archive
        self.detail = detail
        super().__init__(f"Invalid mod archive {archive}: {detail}")


# Local Disk Errors
class FileSystemError(SyncError):
    """Read, write or delete failed, or a path vanished mid-operation."""

    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"File system error at {path}: {detail}")


class WorkspaceBusyError(SyncError):
    """Another invocation holds the scratch workspace."""

    def __init__(self, root: str, timeout: float):
        self.root = root
        self.timeout = timeout
        super().__init__(
            f"Scratch workspace {root} is in use by another update "
            f"(waited {timeout:g}s). Try again once it has finished."
        )


# Configuration Errors
class ConfigError(SyncError):
    """Invalid or incomplete configuration."""
    pass
