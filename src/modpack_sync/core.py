"""Core data models for modpack-sync.

Check/Apply Pattern:
--------------------
An update runs in two phases inside one scratch workspace:

1. Check Phase: stage the remote archive, fingerprint the staged tree and the
   local mod folder, and produce an UpdateDecision.
2. Apply Phase: if the decision says the local folder is stale (and the
   caller confirms), replace the local folder with the staged tree.

Status is always returned as a value (StatusReport, UpdateDecision) rather
than kept in module state, so two checks can never observe each other's
stale result.
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .utils import humanize_size

SyncMode = Literal["in-place", "swap"]


# ============= Fingerprints =============

class Fingerprint(BaseModel):
    """Content digest summarizing an entire directory tree."""

    model_config = ConfigDict(frozen=True)

    digest: str  # 64 hex chars of SHA256
    file_count: int = 0

    @classmethod
    def from_raw(cls, raw: bytes, file_count: int = 0) -> "Fingerprint":
        """Build from a raw 32-byte digest."""
        return cls(digest=raw.hex(), file_count=file_count)

    @property
    def short(self) -> str:
        """Abbreviated digest for display."""
        return self.digest[:12]

    def __str__(self) -> str:
        return f"sha256:{self.digest}"


# ============= Outcomes =============

class SyncOutcome(str, Enum):
    """Result of one check-and-sync invocation."""

    NO_UPDATE_NEEDED = "no_update_needed"
    UPDATE_APPLIED = "update_applied"
    UPDATE_ABORTED_BY_CALLER = "update_aborted_by_caller"
    UPDATE_FAILED = "update_failed"


class UpdateStatus(str, Enum):
    """Answer to "is the local mod set current?"."""

    UP_TO_DATE = "up_to_date"
    UPDATE_AVAILABLE = "update_available"
    UNKNOWN = "unknown"


class FileOperationFailure(BaseModel):
    """A single file or directory operation that failed during apply."""

    path: str
    operation: str  # "delete", "delete-tree", "copy" or "mkdir"
    error: str


# ============= Phase Results =============

class UpdateDecision(BaseModel):
    """Result of comparing the staged remote tree with the local tree."""

    needs_update: bool
    remote: Fingerprint
    local: Fingerprint

    def summary(self) -> str:
        """Get human-readable summary."""
        if not self.needs_update:
            return f"Mods are up to date ({self.local.file_count} files, {self.local.short})"
        return (
            f"Update available: remote {self.remote.short} ({self.remote.file_count} files), "
            f"local {self.local.short} ({self.local.file_count} files)"
        )


class SyncReport(BaseModel):
    """Result of applying a staged tree to the local mod folder."""

    outcome: SyncOutcome
    mode: SyncMode = "in-place"
    reason: Optional[str] = None
    files_deleted: int = 0
    dirs_deleted: int = 0
    files_copied: int = 0
    bytes_copied: int = 0
    failures: List[FileOperationFailure] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def summary(self) -> str:
        """Get human-readable summary."""
        if self.outcome == SyncOutcome.UPDATE_FAILED:
            return f"✗ Update failed: {self.reason}"
        parts = [f"✓ Installed {self.files_copied} files ({humanize_size(self.bytes_copied)})"]
        if self.files_deleted or self.dirs_deleted:
            parts.append(f"removed {self.files_deleted} files, {self.dirs_deleted} directories")
        if self.failures:
            parts.append(f"⚠ {len(self.failures)} operations failed")
        return ", ".join(parts)


class StatusReport(BaseModel):
    """Non-raising answer for status displays."""

    status: UpdateStatus
    reason: Optional[str] = None
    remote: Optional[Fingerprint] = None
    local: Optional[Fingerprint] = None

    @property
    def is_known(self) -> bool:
        return self.status != UpdateStatus.UNKNOWN


class SyncResult(BaseModel):
    """Final result of check_and_sync, handed back to the caller."""

    outcome: SyncOutcome
    reason: Optional[str] = None
    decision: Optional[UpdateDecision] = None
    report: Optional[SyncReport] = None

    @property
    def failures(self) -> List[FileOperationFailure]:
        return self.report.failures if self.report else []

    def summary(self) -> str:
        """Get human-readable summary."""
        if self.outcome == SyncOutcome.NO_UPDATE_NEEDED:
            return "✓ Mods are up to date"
        if self.outcome == SyncOutcome.UPDATE_ABORTED_BY_CALLER:
            return "Update aborted"
        if self.report is not None:
            return self.report.summary()
        return f"✗ Update failed: {self.reason}"
