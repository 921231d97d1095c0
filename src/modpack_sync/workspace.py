"""Scratch workspace used while staging a remote archive.

The workspace is a disposable directory tree with a fixed layout:

    <root>/mods.zip          downloaded archive
    <root>/mods_extracted/   unpacked payload

It lives only for the duration of one update check. `scratch_workspace`
creates it, serializes access to it across processes via a portalocker file
lock, and removes it on every exit path. Cleanup failures are logged and
swallowed so they never replace the outcome of the operation that used the
workspace.

The lock file sits next to the workspace (`<root>.lock`) rather than inside
it, so removing the workspace never races with another waiter's lock.
"""

from __future__ import annotations
import contextlib
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import platformdirs
import portalocker

from .constants import (
    APP_AUTHOR,
    APP_NAME,
    ARCHIVE_FILE,
    DEFAULT_LOCK_TIMEOUT,
    EXTRACT_DIR,
    WORKSPACE_DIR,
)
from .errors import FileSystemError, WorkspaceBusyError

logger = logging.getLogger(__name__)


def default_workspace_root() -> Path:
    """Get platform-appropriate scratch directory.

    - Linux: ~/.cache/modpack-sync/workspace
    - macOS: ~/Library/Caches/modpack-sync/workspace
    - Windows: %LOCALAPPDATA%/modpack-sync/modpack-sync/Cache/workspace
    """
    return Path(platformdirs.user_cache_dir(APP_NAME, APP_AUTHOR)) / WORKSPACE_DIR


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


@dataclass
class ScratchWorkspace:
    """Paths of one scratch workspace. Owned by `scratch_workspace`."""

    root: Path

    @property
    def archive_path(self) -> Path:
        """Download slot for the remote archive."""
        return self.root / ARCHIVE_FILE

    @property
    def extract_dir(self) -> Path:
        """Extraction slot for the unpacked payload."""
        return self.root / EXTRACT_DIR

    def create(self) -> None:
        """Create the workspace, clearing leftovers from a crashed run."""
        if self.root.exists():
            logger.debug("Clearing leftover scratch workspace %s", self.root)
            self.teardown()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(str(self.root), e.strerror or str(e)) from e

    def teardown(self) -> bool:
        """Remove the extraction slot, the archive and the workspace root.

        Best-effort: every failure is logged at WARNING and the remaining
        paths are still attempted.

        Returns:
            True if nothing was left behind
        """
        clean = True
        for path in (self.extract_dir, self.archive_path, self.root):
            try:
                _remove(path)
            except OSError as e:
                clean = False
                logger.warning("Cleanup error for %s: %s", path, e)
        return clean


@contextlib.contextmanager
def scratch_workspace(
    root: Optional[Path] = None,
    *,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> Iterator[ScratchWorkspace]:
    """Acquire a scratch workspace for the duration of the with-block.

    Args:
        root: Workspace root. If None, uses a platform-appropriate default.
        lock_timeout: Seconds to wait while another invocation holds it

    Yields:
        The created ScratchWorkspace

    Raises:
        WorkspaceBusyError: If the lock could not be acquired in time
    """
    root = Path(root) if root else default_workspace_root()
    # Lock files persist (OS releases the lock on crash)
    lock_path = root.with_name(f"{root.name}.lock")
    lock = portalocker.Lock(
        str(lock_path), "w", timeout=lock_timeout, fail_when_locked=False
    )
    try:
        root.parent.mkdir(parents=True, exist_ok=True)
        lock.acquire()
    except portalocker.exceptions.LockException as e:
        raise WorkspaceBusyError(str(root), lock_timeout) from e
    except OSError as e:
        raise FileSystemError(str(root), e.strerror or str(e)) from e

    try:
        workspace = ScratchWorkspace(root)
        workspace.create()
        try:
            yield workspace
        finally:
            if workspace.teardown():
                logger.debug("Scratch workspace removed: %s", root)
    finally:
        lock.release()
