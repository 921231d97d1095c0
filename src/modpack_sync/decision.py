"""Update decision: is the local mod folder stale relative to the remote?"""

import logging
from pathlib import Path
from typing import Optional

from .constants import DEFAULT_LOCK_TIMEOUT, DEFAULT_TIMEOUT
from .core import StatusReport, UpdateDecision, UpdateStatus
from .errors import SyncError
from .fetch import ArchiveFetcher
from .service_types import ProgressCallback
from .snapshot import fingerprint_directory
from .staging import stage_archive
from .workspace import scratch_workspace

logger = logging.getLogger(__name__)


def decide(staged_root: Path, local_dir: Path) -> UpdateDecision:
    """Compare the fingerprints of a staged tree and the local tree.

    A missing local directory fingerprints as an empty tree, so a mod set
    that was never installed always needs an update.

    Raises:
        FileSystemError: If either tree cannot be read
    """
    remote = fingerprint_directory(staged_root)
    local = fingerprint_directory(local_dir, missing_ok=True)
    decision = UpdateDecision(
        needs_update=remote.digest != local.digest,
        remote=remote,
        local=local,
    )
    logger.info(
        "Remote %s (%d files) vs local %s (%d files): %s",
        remote.short, remote.file_count, local.short, local.file_count,
        "update needed" if decision.needs_update else "up to date",
    )
    return decision


def check_for_update(
    url: str,
    local_dir: Path,
    *,
    fetcher: Optional[ArchiveFetcher] = None,
    workspace_root: Optional[Path] = None,
    timeout: float = DEFAULT_TIMEOUT,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    progress: Optional[ProgressCallback] = None,
) -> UpdateDecision:
    """Stage the remote archive in a fresh workspace and decide.

    Every call re-downloads and re-extracts; the workspace is removed before
    returning, so repeated calls accumulate nothing.

    Raises:
        NetworkError, NotFoundError, ArchiveFormatError, FileSystemError,
        WorkspaceBusyError
    """
    with scratch_workspace(workspace_root, lock_timeout=lock_timeout) as workspace:
        staged = stage_archive(url, workspace, fetcher=fetcher, progress=progress, timeout=timeout)
        return decide(staged, Path(local_dir))


def needs_update(url: str, local_dir: Path, **kwargs) -> bool:
    """Return True if local_dir differs from the remote archive's payload.

    Accepts the keyword arguments of `check_for_update`. Errors propagate;
    use `check_status` for a non-raising answer.
    """
    return check_for_update(url, local_dir, **kwargs).needs_update


def check_status(url: str, local_dir: Path, **kwargs) -> StatusReport:
    """Report update status without raising.

    Any failure yields UpdateStatus.UNKNOWN with the error as reason; an
    error is never reported as up to date.
    """
    try:
        decision = check_for_update(url, local_dir, **kwargs)
    except SyncError as e:
        logger.warning("Update status unknown: %s", e)
        return StatusReport(status=UpdateStatus.UNKNOWN, reason=str(e))

    return StatusReport(
        status=UpdateStatus.UPDATE_AVAILABLE if decision.needs_update else UpdateStatus.UP_TO_DATE,
        remote=decision.remote,
        local=decision.local,
    )
