"""Core operations for modpack-sync."""

import logging
from pathlib import Path
from typing import Callable, Optional

from .config import SyncConfig
from .constants import DEFAULT_LOCK_TIMEOUT, DEFAULT_TIMEOUT
from .core import SyncMode, SyncOutcome, SyncResult, UpdateDecision
from .decision import decide
from .errors import SyncError
from .fetch import ArchiveFetcher
from .service_types import ProgressCallback
from .staging import stage_archive
from .sync import apply_update
from .workspace import scratch_workspace

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[UpdateDecision], bool]


def check_and_sync(
    url: str,
    local_dir: Path,
    *,
    confirm: Optional[ConfirmFn] = None,
    mode: SyncMode = "in-place",
    fetcher: Optional[ArchiveFetcher] = None,
    workspace_root: Optional[Path] = None,
    timeout: float = DEFAULT_TIMEOUT,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    progress: Optional[ProgressCallback] = None,
) -> SyncResult:
    """Bring local_dir up to date with the remote archive.

    Runs stage -> decide -> confirm -> apply inside one scratch workspace,
    which is removed on every exit path.

    Args:
        url: Remote archive location
        local_dir: Mod folder to keep in sync
        confirm: Called with the decision when an update is needed; returning
            False aborts without touching local_dir. None means proceed.
        mode: Synchronizer mode ("in-place" or "swap")
        fetcher: Fetcher override (defaults to one chosen from the URL)
        workspace_root: Scratch workspace location override
        timeout: Network timeout in seconds
        lock_timeout: Seconds to wait for a busy scratch workspace
        progress: Optional progress receiver

    Returns:
        SyncResult. Staging and fingerprinting errors come back as
        UPDATE_FAILED with the error as reason, never as an exception.
    """
    local_dir = Path(local_dir)
    try:
        with scratch_workspace(workspace_root, lock_timeout=lock_timeout) as workspace:
            staged = stage_archive(url, workspace, fetcher=fetcher, progress=progress, timeout=timeout)
            decision = decide(staged, local_dir)

            if not decision.needs_update:
                return SyncResult(outcome=SyncOutcome.NO_UPDATE_NEEDED, decision=decision)

            if confirm is not None and not confirm(decision):
                logger.info("Update aborted by caller")
                return SyncResult(outcome=SyncOutcome.UPDATE_ABORTED_BY_CALLER, decision=decision)

            report = apply_update(staged, local_dir, mode=mode, progress=progress)
    except SyncError as e:
        logger.error("Update check failed: %s", e)
        return SyncResult(outcome=SyncOutcome.UPDATE_FAILED, reason=str(e))

    return SyncResult(
        outcome=report.outcome,
        reason=report.reason,
        decision=decision,
        report=report,
    )


def sync_from_config(
    config: SyncConfig,
    *,
    confirm: Optional[ConfirmFn] = None,
    mode: Optional[SyncMode] = None,
    fetcher: Optional[ArchiveFetcher] = None,
    progress: Optional[ProgressCallback] = None,
) -> SyncResult:
    """Run check_and_sync with settings taken from a SyncConfig."""
    return check_and_sync(
        config.remote_url,
        config.target_dir,
        confirm=confirm,
        mode=mode or config.mode,
        fetcher=fetcher,
        workspace_root=config.workspace_dir,
        timeout=config.timeout,
        progress=progress,
    )
