"""Service layer types for modpack-sync."""

from typing import Optional, Protocol


class ProgressCallback(Protocol):
    """Progress reporting interface."""

    def on_download_progress(self, received: int, total: Optional[int]) -> None:
        """Called as archive bytes arrive. total is None when unknown."""
        ...

    def on_file_deleted(self, path: str) -> None:
        """Called when a local file or directory has been removed."""
        ...

    def on_file_copied(self, path: str, size: int) -> None:
        """Called when a staged file has been installed."""
        ...

    def on_file_error(self, path: str, error: str) -> None:
        """Called when a file operation fails and the pass continues."""
        ...


class NullProgress:
    """ProgressCallback that ignores everything."""

    def on_download_progress(self, received: int, total: Optional[int]) -> None:
        pass

    def on_file_deleted(self, path: str) -> None:
        pass

    def on_file_copied(self, path: str, size: int) -> None:
        pass

    def on_file_error(self, path: str, error: str) -> None:
        pass
