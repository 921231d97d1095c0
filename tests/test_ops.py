"""Tests for the check-and-sync operation."""

from unittest.mock import patch

import pytest

from modpack_sync.config import SyncConfig
from modpack_sync.core import SyncOutcome
from modpack_sync.ops import check_and_sync, sync_from_config


@pytest.fixture
def run(fetcher, workspace_root):
    """check_and_sync bound to the test fetcher and workspace."""
    def _run(url, local, **kwargs):
        return check_and_sync(str(url), local, fetcher=fetcher, workspace_root=workspace_root, **kwargs)
    return _run


class TestCheckAndSync:
    """Full stage -> decide -> confirm -> apply flow."""

    def test_fresh_install(self, tmp_path, make_zip, mod_files, read_tree, run, workspace_root):
        """Remote has a.dll and sub/b.dll, local folder missing."""
        archive = make_zip(mod_files)
        local = tmp_path / "plugins"

        result = run(archive, local)

        assert result.outcome == SyncOutcome.UPDATE_APPLIED
        assert read_tree(local) == mod_files
        assert result.report.files_copied == 2
        assert result.decision.needs_update is True
        assert not workspace_root.exists()

    def test_stale_file_removed(self, tmp_path, make_zip, make_tree, mod_files, read_tree, run):
        archive = make_zip(mod_files)
        local = make_tree(tmp_path / "plugins", {"a.dll": b"0123456789", "old.dll": b"stale"})

        result = run(archive, local)

        assert result.outcome == SyncOutcome.UPDATE_APPLIED
        assert read_tree(local) == mod_files

    def test_identical_tree_skips_apply(self, tmp_path, make_zip, make_tree, mod_files, run):
        archive = make_zip(mod_files)
        local = make_tree(tmp_path / "plugins", mod_files)

        with patch("modpack_sync.ops.apply_update") as mock_apply:
            result = run(archive, local)

        assert result.outcome == SyncOutcome.NO_UPDATE_NEEDED
        mock_apply.assert_not_called()
        assert result.report is None

    def test_identical_tree_skips_confirm(self, tmp_path, make_zip, make_tree, mod_files, run):
        archive = make_zip(mod_files)
        local = make_tree(tmp_path / "plugins", mod_files)
        asked = []

        run(archive, local, confirm=lambda decision: asked.append(decision) or True)

        assert asked == []

    def test_declined_confirmation(self, tmp_path, make_zip, make_tree, mod_files, read_tree, run, workspace_root):
        """Declining leaves the local folder exactly as it was."""
        archive = make_zip(mod_files)
        local = make_tree(tmp_path / "plugins", {"old.dll": b"old"})

        result = run(archive, local, confirm=lambda decision: False)

        assert result.outcome == SyncOutcome.UPDATE_ABORTED_BY_CALLER
        assert read_tree(local) == {"old.dll": b"old"}
        assert not workspace_root.exists()

    def test_confirm_receives_decision(self, tmp_path, make_zip, mod_files, run):
        archive = make_zip(mod_files)
        seen = []

        run(archive, tmp_path / "plugins", confirm=lambda decision: seen.append(decision) or True)

        assert len(seen) == 1
        assert seen[0].needs_update is True
        assert seen[0].remote.file_count == 2

    def test_missing_archive(self, tmp_path, make_tree, read_tree, run, workspace_root):
        local = make_tree(tmp_path / "plugins", {"keep.dll": b"keep"})

        result = run(tmp_path / "missing.zip", local)

        assert result.outcome == SyncOutcome.UPDATE_FAILED
        assert "not found upstream" in result.reason
        assert result.failures == []
        assert read_tree(local) == {"keep.dll": b"keep"}
        assert not workspace_root.exists()

    def test_encrypted_archive(self, tmp_path, make_zip, make_tree, mod_files, read_tree, mark_encrypted, run):
        archive = mark_encrypted(make_zip(mod_files))
        local = make_tree(tmp_path / "plugins", {"keep.dll": b"keep"})

        result = run(archive, local)

        assert result.outcome == SyncOutcome.UPDATE_FAILED
        assert "encrypted member" in result.reason
        assert read_tree(local) == {"keep.dll": b"keep"}

    def test_corrupt_archive(self, tmp_path, make_tree, read_tree, run):
        archive = tmp_path / "bad.zip"
        archive.write_bytes(b"not a zip")
        local = make_tree(tmp_path / "plugins", {"keep.dll": b"keep"})

        result = run(archive, local)

        assert result.outcome == SyncOutcome.UPDATE_FAILED
        assert read_tree(local) == {"keep.dll": b"keep"}

    def test_workspace_removed_when_apply_raises(self, tmp_path, make_zip, mod_files, run, workspace_root):
        archive = make_zip(mod_files)

        with patch("modpack_sync.ops.apply_update", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError, match="boom"):
                run(archive, tmp_path / "plugins")

        assert not workspace_root.exists()

    def test_second_run_is_no_op(self, tmp_path, make_zip, mod_files, run):
        archive = make_zip(mod_files)
        local = tmp_path / "plugins"

        first = run(archive, local)
        second = run(archive, local)

        assert first.outcome == SyncOutcome.UPDATE_APPLIED
        assert second.outcome == SyncOutcome.NO_UPDATE_NEEDED

    def test_swap_mode(self, tmp_path, make_zip, make_tree, mod_files, read_tree, run):
        archive = make_zip(mod_files)
        local = make_tree(tmp_path / "plugins", {"old.dll": b"old"})

        result = run(archive, local, mode="swap")

        assert result.outcome == SyncOutcome.UPDATE_APPLIED
        assert result.report.mode == "swap"
        assert read_tree(local) == mod_files

    def test_summary(self, tmp_path, make_zip, mod_files, run):
        archive = make_zip(mod_files)
        result = run(archive, tmp_path / "plugins")
        assert result.summary().startswith("✓ Installed 2 files")


class TestSyncFromConfig:
    """Settings come from SyncConfig."""

    def test_uses_config(self, tmp_path, make_zip, mod_files, read_tree, fetcher, workspace_root):
        archive = make_zip(mod_files)
        config = SyncConfig(
            remote_url=str(archive),
            target_dir=tmp_path / "plugins",
            mode="swap",
            workspace_dir=workspace_root,
        )

        result = sync_from_config(config, fetcher=fetcher)

        assert result.outcome == SyncOutcome.UPDATE_APPLIED
        assert result.report.mode == "swap"
        assert read_tree(tmp_path / "plugins") == mod_files
        assert not workspace_root.exists()

    def test_mode_override(self, tmp_path, make_zip, mod_files, fetcher, workspace_root):
        archive = make_zip(mod_files)
        config = SyncConfig(remote_url=str(archive), target_dir=tmp_path / "plugins", workspace_dir=workspace_root)

        result = sync_from_config(config, fetcher=fetcher, mode="swap")

        assert result.report.mode == "swap"
