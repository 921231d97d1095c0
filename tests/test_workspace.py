"""Tests for the scratch workspace lifecycle."""

import logging

import portalocker
import pytest

from modpack_sync.constants import ARCHIVE_FILE, EXTRACT_DIR
from modpack_sync.errors import FileSystemError, WorkspaceBusyError
from modpack_sync.workspace import ScratchWorkspace, scratch_workspace


class TestScratchWorkspaceLayout:
    """Fixed layout of the workspace."""

    def test_slots(self, workspace_root):
        workspace = ScratchWorkspace(workspace_root)
        assert workspace.archive_path == workspace_root / ARCHIVE_FILE
        assert workspace.extract_dir == workspace_root / EXTRACT_DIR

    def test_create_clears_leftovers(self, workspace_root, make_tree):
        """A crashed run's leftovers are removed before reuse."""
        make_tree(workspace_root, {
            "mods.zip": b"stale archive",
            "mods_extracted/old.dll": b"old",
        })

        workspace = ScratchWorkspace(workspace_root)
        workspace.create()

        assert workspace_root.is_dir()
        assert list(workspace_root.iterdir()) == []

    def test_create_is_idempotent(self, workspace_root):
        workspace = ScratchWorkspace(workspace_root)
        workspace.create()
        workspace.create()
        assert workspace_root.is_dir()

    def test_teardown_when_nothing_exists(self, workspace_root):
        """Teardown of a never-created workspace is a no-op."""
        assert ScratchWorkspace(workspace_root).teardown() is True

    def test_teardown_logs_and_swallows_errors(self, workspace_root, monkeypatch, caplog):
        workspace = ScratchWorkspace(workspace_root)
        workspace.create()
        workspace.extract_dir.mkdir()

        def boom(path):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr("modpack_sync.workspace._remove", boom)

        with caplog.at_level(logging.WARNING, logger="modpack_sync.workspace"):
            assert workspace.teardown() is False

        assert "Cleanup error" in caplog.text


class TestScratchWorkspaceContext:
    """scratch_workspace removes the workspace on every exit path."""

    def test_removed_after_success(self, workspace_root):
        with scratch_workspace(workspace_root) as workspace:
            workspace.archive_path.write_bytes(b"zip")
            workspace.extract_dir.mkdir()
            (workspace.extract_dir / "a.dll").write_bytes(b"a")

        assert not workspace_root.exists()

    def test_removed_after_exception(self, workspace_root):
        with pytest.raises(RuntimeError, match="boom"):
            with scratch_workspace(workspace_root) as workspace:
                workspace.archive_path.write_bytes(b"zip")
                raise RuntimeError("boom")

        assert not workspace_root.exists()

    def test_cleanup_failure_does_not_mask_result(self, workspace_root, monkeypatch):
        """A failed teardown never replaces the block's outcome."""
        monkeypatch.setattr(ScratchWorkspace, "teardown", lambda self: False)

        with scratch_workspace(workspace_root) as workspace:
            result = workspace.root.name

        assert result == workspace_root.name

    def test_lock_file_lives_next_to_workspace(self, workspace_root):
        with scratch_workspace(workspace_root):
            pass
        assert (workspace_root.parent / f"{workspace_root.name}.lock").exists()

    def test_sequential_use(self, workspace_root):
        """The lock is released so later invocations can proceed."""
        for _ in range(3):
            with scratch_workspace(workspace_root, lock_timeout=0.5) as workspace:
                workspace.archive_path.write_bytes(b"zip")
        assert not workspace_root.exists()

    def test_busy_workspace(self, workspace_root):
        """A held lock surfaces as WorkspaceBusyError after the timeout."""
        workspace_root.parent.mkdir(parents=True, exist_ok=True)
        lock_path = workspace_root.parent / f"{workspace_root.name}.lock"

        holder = portalocker.Lock(str(lock_path), "w", timeout=1)
        holder.acquire()
        try:
            with pytest.raises(WorkspaceBusyError, match="in use by another update"):
                with scratch_workspace(workspace_root, lock_timeout=0.1):
                    pass
        finally:
            holder.release()

    def test_unusable_location(self, tmp_path):
        """A root that can't be created surfaces as FileSystemError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(FileSystemError):
            with scratch_workspace(blocker / "sub" / "workspace", lock_timeout=0.1):
                pass
