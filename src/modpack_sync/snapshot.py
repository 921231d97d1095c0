"""Directory snapshot with digest computation."""

import logging
import os
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel, Field

from .core import Fingerprint
from .errors import FileSystemError
from .hashing import compute_file_digest, compute_tree_digest

logger = logging.getLogger(__name__)


def _sort_key(rel_path: str) -> bytes:
    # Byte order of the UTF-8 encoding, identical on every platform
    return rel_path.encode("utf-8", "surrogateescape")


def iter_tree_files(
    root: Path,
    on_error: Optional[Callable[[str, OSError], None]] = None,
) -> List[Tuple[str, Path]]:
    """List every file under root as (POSIX relative path, absolute path).

    Uses an explicit stack instead of recursion. Directory symlinks are not
    followed; file symlinks are listed and read through.

    Args:
        root: Directory to walk
        on_error: If given, called with (relative path, error) for each
            unreadable directory, which is then skipped instead of raising

    Raises:
        FileSystemError: If a directory cannot be listed and on_error is None
    """
    found: List[Tuple[str, Path]] = []
    pending: List[Tuple[Path, str]] = [(Path(root), "")]
    while pending:
        directory, prefix = pending.pop()
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            if on_error is None:
                raise FileSystemError(str(directory), e.strerror or str(e)) from e
            on_error(prefix.rstrip("/") or ".", e)
            continue

        for entry in entries:
            rel = f"{prefix}{entry.name}"
            try:
                if entry.is_dir(follow_symlinks=False):
                    pending.append((Path(entry.path), f"{rel}/"))
                elif entry.is_file():
                    found.append((rel, Path(entry.path)))
            except OSError as e:
                if on_error is None:
                    raise FileSystemError(entry.path, e.strerror or str(e)) from e
                on_error(rel, e)
    return found


class SnapshotEntry(BaseModel):
    """Digest of a single file in a snapshot."""

    path: str  # POSIX relative path
    digest: str  # 64 hex chars
    size: int


class DirectorySnapshot(BaseModel):
    """
    Full snapshot of a directory tree with per-file digests.

    Entries are kept in canonical order (UTF-8 byte order of the POSIX
    relative path), so two scans of identical trees compare equal no matter
    how the file system enumerated them.
    """

    entries: List[SnapshotEntry] = Field(default_factory=list)

    @classmethod
    def scan(cls, root: Path) -> "DirectorySnapshot":
        """Hash every file under root.

        This is the expensive operation - reads every byte of every file.

        Raises:
            FileSystemError: If root is not a directory, a directory is
                unreadable, or a file vanishes between listing and reading
        """
        root = Path(root)
        if not root.is_dir():
            raise FileSystemError(str(root), "not a directory")

        files = iter_tree_files(root)
        files.sort(key=lambda item: _sort_key(item[0]))

        entries = []
        for rel, path in files:
            try:
                digest = compute_file_digest(path)
                size = path.stat().st_size
            except OSError as e:
                raise FileSystemError(str(path), e.strerror or str(e)) from e
            entries.append(SnapshotEntry(path=rel, digest=digest.hex(), size=size))

        logger.debug("Scanned %d files under %s", len(entries), root)
        return cls(entries=entries)

    @property
    def total_size(self) -> int:
        return sum(e.size for e in self.entries)

    def fingerprint(self) -> Fingerprint:
        """Collapse the per-file digests into one tree fingerprint."""
        raw = compute_tree_digest(bytes.fromhex(e.digest) for e in self.entries)
        return Fingerprint.from_raw(raw, file_count=len(self.entries))


def fingerprint_directory(path: Path, missing_ok: bool = False) -> Fingerprint:
    """Compute the content fingerprint of a directory tree.

    Args:
        path: Directory to fingerprint
        missing_ok: If True, a missing directory fingerprints as an empty tree

    Returns:
        Fingerprint of the tree

    Raises:
        FileSystemError: If the tree cannot be read
    """
    path = Path(path)
    if missing_ok and not os.path.lexists(path):
        return DirectorySnapshot().fingerprint()
    return DirectorySnapshot.scan(path).fingerprint()
