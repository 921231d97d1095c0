"""Shared test fixtures and utilities."""

import logging
import zipfile
from pathlib import Path
import pytest

from modpack_sync.fetch import FileArchiveFetcher


@pytest.fixture(autouse=True)
def isolated_app_dirs(tmp_path, monkeypatch):
    """Keep config and log files out of the real user directories."""
    monkeypatch.setenv("MODPACK_SYNC_CONFIG", str(tmp_path / "appconfig" / "config.yaml"))
    monkeypatch.setenv("MODPACK_SYNC_LOG", str(tmp_path / "applog" / "modpack-sync.log"))


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers the CLI callback attached during a test."""
    yield
    logger = logging.getLogger("modpack_sync")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


@pytest.fixture
def make_tree():
    """Factory fixture to write {relative path: content} under a root."""
    def _make(root: Path, files: dict) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, str):
                content = content.encode("utf-8")
            path.write_bytes(content)
        return root
    return _make


@pytest.fixture
def make_zip(tmp_path):
    """Factory fixture to build a zip archive from {member name: content}."""
    def _make(files: dict, name: str = "plugins.zip") -> Path:
        archive = tmp_path / "remote" / name
        archive.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive, "w", zipfile.ZIP_DEFLATED) as zf:
            for member, content in files.items():
                if isinstance(content, str):
                    content = content.encode("utf-8")
                zf.writestr(member, content)
        return archive
    return _make


@pytest.fixture
def workspace_root(tmp_path):
    """Scratch workspace location inside tmp_path."""
    return tmp_path / "scratch" / "workspace"


@pytest.fixture
def fetcher():
    """Fetcher that reads archives from the local file system."""
    return FileArchiveFetcher()


@pytest.fixture
def mod_files():
    """The two-file payload used across scenario tests."""
    return {
        "a.dll": b"0123456789",  # 10 bytes
        "sub/b.dll": b"abcd",  # 4 bytes
    }


@pytest.fixture
def read_tree():
    """Return {POSIX relative path: bytes} for every file under a root."""
    def _read(root: Path) -> dict:
        return {
            p.relative_to(root).as_posix(): p.read_bytes()
            for p in sorted(root.rglob("*"))
            if p.is_file()
        }
    return _read


@pytest.fixture
def mark_encrypted():
    """Set the encryption flag on every member of an existing zip."""
    def _mark(archive: Path) -> Path:
        data = bytearray(archive.read_bytes())
        # (signature, offset of the general purpose flag bits)
        for signature, offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
            pos = data.find(signature)
            while pos != -1:
                data[pos + offset] |= 0x1
                pos = data.find(signature, pos + 4)
        archive.write_bytes(bytes(data))
        return archive
    return _mark
