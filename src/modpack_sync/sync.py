"""Replace a local mod folder with a staged tree.

Two modes are supported:

- ``in-place``: wipe the local folder, then copy the staged tree into it.
  Best-effort and forward-only: a failing delete or copy is recorded in the
  report and the pass continues. There is no rollback, so a partial failure
  can leave a mix of new and stale files behind.
- ``swap``: copy the staged tree into a fresh sibling directory and rename
  it over the local folder only if every file copied. A failed copy leaves
  the local folder untouched.

Confirming the update with the user happens before this module is called.
All tree walks use explicit stacks, so deeply nested trees cannot exhaust
the interpreter's recursion limit.
"""

import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional

from .core import FileOperationFailure, SyncMode, SyncOutcome, SyncReport
from .service_types import NullProgress, ProgressCallback
from .snapshot import iter_tree_files
from .utils import fsync_dir

logger = logging.getLogger(__name__)


def apply_update(
    staged_root: Path,
    local_dir: Path,
    *,
    mode: SyncMode = "in-place",
    progress: Optional[ProgressCallback] = None,
) -> SyncReport:
    """Make local_dir hold exactly the contents of staged_root.

    Args:
        staged_root: Root of the extracted remote tree
        local_dir: Mod folder to replace (created if missing)
        mode: "in-place" (wipe then copy) or "swap" (copy aside then rename)
        progress: Optional per-file progress receiver

    Returns:
        SyncReport. UPDATE_APPLIED when the copy pass completed, even with
        individual failures listed in ``failures``; UPDATE_FAILED with a
        reason for structural problems.

    Raises:
        ValueError: If mode is not recognized
    """
    if mode not in ("in-place", "swap"):
        raise ValueError(f"Invalid sync mode: {mode}")

    staged_root = Path(staged_root)
    local_dir = Path(local_dir)
    progress = progress or NullProgress()
    report = SyncReport(outcome=SyncOutcome.UPDATE_APPLIED, mode=mode)

    # Structural checks happen before anything destructive
    reason = _preflight(staged_root, local_dir)
    if reason:
        logger.error("Update failed: %s", reason)
        report.outcome = SyncOutcome.UPDATE_FAILED
        report.reason = reason
        return report

    if mode == "swap":
        _apply_swap(staged_root, local_dir, report, progress)
    else:
        _apply_in_place(staged_root, local_dir, report, progress)

    if report.outcome == SyncOutcome.UPDATE_APPLIED:
        logger.info(
            "Installed %d files into %s (%d failures)",
            report.files_copied, local_dir, len(report.failures),
        )
    return report


def remove_tree(root: Path) -> None:
    """Delete a directory tree without recursion.

    Raises:
        OSError: On the first entry that cannot be removed
    """
    dirs: List[Path] = []
    pending = [Path(root)]
    while pending:
        directory = pending.pop()
        dirs.append(directory)
        with os.scandir(directory) as it:
            for entry in it:
                if entry.is_dir(follow_symlinks=False):
                    pending.append(Path(entry.path))
                else:
                    os.unlink(entry.path)
    # Children were discovered after their parents
    for directory in reversed(dirs):
        os.rmdir(directory)


# ============= Internals =============

def _preflight(staged_root: Path, local_dir: Path) -> Optional[str]:
    if not staged_root.is_dir():
        return f"staged tree missing: {staged_root}"
    try:
        os.listdir(staged_root)
    except OSError as e:
        return f"staged tree unreadable: {staged_root} ({e.strerror or e})"

    if local_dir.exists() and not local_dir.is_dir():
        return f"target is not a directory: {local_dir}"
    try:
        local_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return f"cannot create target directory {local_dir} ({e.strerror or e})"
    return None


def _record(report: SyncReport, progress: ProgressCallback, path: str, operation: str, error: Exception) -> None:
    message = getattr(error, "strerror", None) or str(error)
    report.failures.append(FileOperationFailure(path=path, operation=operation, error=message))
    logger.warning("Failed to %s %s: %s", operation, path, message)
    progress.on_file_error(path, message)


def _apply_in_place(staged_root: Path, local_dir: Path, report: SyncReport, progress: ProgressCallback) -> None:
    logger.info("Removing old mods from %s", local_dir)
    _wipe_files(local_dir, report, progress)
    _wipe_dirs(local_dir, report, progress)

    logger.info("Installing new mods into %s", local_dir)
    _copy_tree(staged_root, local_dir, report, progress)


def _wipe_files(local_dir: Path, report: SyncReport, progress: ProgressCallback) -> None:
    """Delete every file under local_dir, one at a time."""
    files = iter_tree_files(
        local_dir,
        on_error=lambda rel, e: _record(report, progress, rel, "delete", e),
    )
    for rel, path in files:
        try:
            path.unlink()
        except OSError as e:
            _record(report, progress, rel, "delete", e)
            continue
        report.files_deleted += 1
        logger.debug("Removed: %s", rel)
        progress.on_file_deleted(rel)


def _wipe_dirs(local_dir: Path, report: SyncReport, progress: ProgressCallback) -> None:
    """Delete each direct subdirectory of local_dir as a whole tree."""
    try:
        with os.scandir(local_dir) as it:
            entries = list(it)
    except OSError as e:
        _record(report, progress, ".", "delete-tree", e)
        return

    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                remove_tree(Path(entry.path))
                report.dirs_deleted += 1
            elif entry.is_symlink():
                # Leftovers the file pass skips: dangling or directory symlinks
                os.unlink(entry.path)
                report.files_deleted += 1
            else:
                continue
        except OSError as e:
            _record(report, progress, entry.name, "delete-tree", e)
            continue
        logger.debug("Removed directory: %s", entry.name)
        progress.on_file_deleted(entry.name)


def _copy_tree(staged_root: Path, dest_root: Path, report: SyncReport, progress: ProgressCallback) -> None:
    """Copy staged_root into dest_root, overwriting existing files."""
    pending = [(staged_root, dest_root, "")]
    while pending:
        src_dir, dst_dir, prefix = pending.pop()
        try:
            with os.scandir(src_dir) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            _record(report, progress, prefix.rstrip("/") or ".", "copy", e)
            continue

        for entry in entries:
            rel = f"{prefix}{entry.name}"
            target = dst_dir / entry.name
            if entry.is_dir(follow_symlinks=False):
                try:
                    target.mkdir(exist_ok=True)
                except OSError as e:
                    # Whole subtree is skipped
                    _record(report, progress, rel, "mkdir", e)
                    continue
                logger.debug("Created directory: %s", rel)
                pending.append((Path(entry.path), target, f"{rel}/"))
                continue

            try:
                shutil.copy2(entry.path, target)
                size = entry.stat().st_size
            except OSError as e:
                _record(report, progress, rel, "copy", e)
                continue
            report.files_copied += 1
            report.bytes_copied += size
            logger.debug("Installed: %s", rel)
            progress.on_file_copied(rel, size)


def _discard(path: Path) -> None:
    try:
        remove_tree(path)
    except OSError as e:
        logger.warning("Could not remove %s: %s", path, e)


def _apply_swap(staged_root: Path, local_dir: Path, report: SyncReport, progress: ProgressCallback) -> None:
    parent = local_dir.parent
    try:
        incoming = Path(tempfile.mkdtemp(prefix=f".{local_dir.name}.incoming-", dir=parent))
    except OSError as e:
        report.outcome = SyncOutcome.UPDATE_FAILED
        report.reason = f"cannot create staging directory in {parent} ({e.strerror or e})"
        return

    logger.info("Staging new mods next to %s", local_dir)
    _copy_tree(staged_root, incoming, report, progress)
    if report.failures:
        _discard(incoming)
        report.outcome = SyncOutcome.UPDATE_FAILED
        report.reason = (
            f"{len(report.failures)} files could not be copied; "
            f"{local_dir} was left untouched"
        )
        report.files_copied = 0
        report.bytes_copied = 0
        return

    # mkdtemp creates 0o700; the mod folder keeps its own permissions
    try:
        shutil.copymode(local_dir, incoming)
    except OSError as e:
        _discard(incoming)
        report.outcome = SyncOutcome.UPDATE_FAILED
        report.reason = f"cannot copy permissions of {local_dir} ({e.strerror or e})"
        return

    previous = parent / f".{local_dir.name}.previous-{uuid.uuid4().hex[:8]}"
    try:
        os.replace(local_dir, previous)
    except OSError as e:
        _discard(incoming)
        report.outcome = SyncOutcome.UPDATE_FAILED
        report.reason = f"cannot move {local_dir} aside ({e.strerror or e})"
        return

    try:
        os.replace(incoming, local_dir)
    except OSError as e:
        # Put the old folder back
        try:
            os.replace(previous, local_dir)
        except OSError as restore_error:
            logger.error("Could not restore %s from %s: %s", local_dir, previous, restore_error)
        _discard(incoming)
        report.outcome = SyncOutcome.UPDATE_FAILED
        report.reason = f"cannot move new mods into place ({e.strerror or e})"
        return
    fsync_dir(parent)

    old_files = iter_tree_files(previous, on_error=lambda rel, e: None)
    try:
        remove_tree(previous)
    except OSError as e:
        _record(report, progress, previous.name, "delete-tree", e)
        return
    report.files_deleted = len(old_files)
    for rel, _ in old_files:
        progress.on_file_deleted(rel)
