"""Keep a game's mod folder in sync with a remote reference archive."""

from .constants import VERSION as __version__
from .core import Fingerprint, SyncOutcome, UpdateStatus
from .decision import check_status, decide, needs_update
from .ops import check_and_sync
from .snapshot import fingerprint_directory
from .sync import apply_update

__all__ = [
    "__version__",
    "Fingerprint",
    "SyncOutcome",
    "UpdateStatus",
    "apply_update",
    "check_and_sync",
    "check_status",
    "decide",
    "fingerprint_directory",
    "needs_update",
]
