"""Utility functions for modpack-sync."""

from pathlib import Path
import os
import tempfile


def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def fsync_dir(path: Path) -> None:
    """Fsync a directory so renames inside it are durable.

    Best-effort: Windows and some filesystems don't support directory fsync.
    """
    try:
        # Use O_DIRECTORY flag if available (Linux)
        flags = os.O_RDONLY
        if hasattr(os, "O_DIRECTORY"):
            flags |= os.O_DIRECTORY

        fd = os.open(str(path), flags)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        pass


def atomic_write_text(path: Path, text: str) -> None:
    """Atomically write text to file with crash safety.

    1. Writes to temp file with fsync to ensure content is on disk
    2. Atomic rename to target path (appears all-at-once)
    3. Fsync parent directory to ensure rename is durable

    Args:
        path: Target file path
        text: Text content to write
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Create temp file in same directory
    with tempfile.NamedTemporaryFile(
        mode="w",
        delete=False,
        dir=path.parent,
        prefix=f".{path.name}.tmp-",
        suffix="",
        encoding="utf-8",
    ) as f:
        f.write(text)
        f.flush()
        os.fsync(f.fileno())
        tmp = Path(f.name)

    try:
        os.replace(tmp, path)
        fsync_dir(path.parent)
    except BaseException:
        # Clean up temp file on any error
        tmp.unlink(missing_ok=True)
        raise


def atomic_download(write_fn, final_path: Path) -> None:
    """Atomically produce a file with crash safety.

    The final path either keeps its previous content or holds the complete
    new content, never a truncated download.

    Args:
        write_fn: Function that takes a temp file path (not file object)
        final_path: Final destination path

    Raises:
        Exception: Whatever write_fn raises; the temp file is removed first
    """
    final_path.parent.mkdir(parents=True, exist_ok=True)

    # Create temp file in same directory for atomic rename
    fd, tmppath = tempfile.mkstemp(
        prefix=f".{final_path.name}.partial-",
        dir=final_path.parent
    )

    try:
        # Close the fd - we'll let write_fn handle the file
        os.close(fd)

        write_fn(Path(tmppath))

        # Ensure data is synced - must open with write permission for fsync to work
        with open(tmppath, "r+b") as f:
            os.fsync(f.fileno())

        os.replace(tmppath, final_path)
        fsync_dir(final_path.parent)

    except BaseException:
        try:
            os.unlink(tmppath)
        except OSError:
            pass
        raise


def safe_member_path(root: Path, rel_path: str) -> Path:
    """Validate an archive member path and resolve it under root.

    Args:
        root: Extraction root directory
        rel_path: Member name as stored in the archive

    Returns:
        Safe resolved path

    Raises:
        ValueError: If path is unsafe or escapes root
    """
    if not rel_path or not rel_path.strip():
        raise ValueError("Unsafe path in archive: empty path")

    # Forbid absolute or parent traversal
    # Check both forward and backslash for cross-platform safety
    if (rel_path.startswith(("/", "\\")) or
        (len(rel_path) > 1 and rel_path[1] == ":") or  # Windows drive letter
        ".." in rel_path.split("\\") or
        ".." in rel_path.split("/")):
        raise ValueError(f"Unsafe path in archive: {rel_path}")

    target = (root / rel_path).resolve()
    root_resolved = root.resolve()

    try:
        target.relative_to(root_resolved)
    except ValueError:
        raise ValueError(f"Path escapes extraction root: {rel_path}")

    return target
