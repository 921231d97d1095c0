"""Stage a remote archive into the scratch workspace."""

import logging
import shutil
import zipfile
import zlib
from pathlib import Path
from typing import Optional

from .constants import DEFAULT_TIMEOUT
from .errors import ArchiveFormatError, FileSystemError
from .fetch import ArchiveFetcher, make_fetcher
from .service_types import ProgressCallback
from .utils import atomic_download, safe_member_path
from .workspace import ScratchWorkspace

logger = logging.getLogger(__name__)


def stage_archive(
    url: str,
    workspace: ScratchWorkspace,
    fetcher: Optional[ArchiveFetcher] = None,
    progress: Optional[ProgressCallback] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Path:
    """Download the remote archive and unpack it into the workspace.

    Any previous download is overwritten and any previous extraction is
    removed first; extraction is always a clean, full unpack.

    Args:
        url: Archive location (http(s)://, file:// or local path)
        workspace: Scratch workspace that owns the download and extraction slots
        fetcher: Fetcher to use. If None, chosen from the URL scheme.
        progress: Optional download progress receiver
        timeout: Network timeout when a fetcher is created here

    Returns:
        Root of the extracted tree

    Raises:
        NetworkError, NotFoundError: If the fetch fails
        ArchiveFormatError: If the archive cannot be unpacked
        FileSystemError: If the workspace cannot be written
    """
    if fetcher is None:
        fetcher = make_fetcher(url, timeout=timeout)

    try:
        atomic_download(lambda tmp: fetcher.fetch(url, tmp, progress), workspace.archive_path)
    except OSError as e:
        raise FileSystemError(str(workspace.archive_path), e.strerror or str(e)) from e

    extract_archive(workspace.archive_path, workspace.extract_dir)
    return workspace.extract_dir


def extract_archive(archive: Path, dest: Path) -> int:
    """Unpack a zip archive into dest, replacing whatever dest held.

    Member names are validated before anything is written; backslash
    separators from Windows-built archives are treated as directory
    separators.

    Returns:
        Number of files extracted

    Raises:
        ArchiveFormatError: Corrupt archive, unsafe or encrypted member,
            file/directory name clash, or no files
        FileSystemError: If dest cannot be cleared or written
    """
    if dest.exists():
        try:
            shutil.rmtree(dest)
        except OSError as e:
            raise FileSystemError(str(dest), f"cannot remove stale extraction: {e}") from e

    try:
        zf = zipfile.ZipFile(archive)
    except zipfile.BadZipFile as e:
        raise ArchiveFormatError(str(archive), "not a zip archive") from e
    except OSError as e:
        raise FileSystemError(str(archive), e.strerror or str(e)) from e

    extracted = 0
    with zf:
        members = zf.infolist()
        if not any(not m.is_dir() for m in members):
            raise ArchiveFormatError(str(archive), "no recognizable payload root (archive has no files)")

        # Validate every member before writing anything
        targets = []
        files, dirs = set(), set()
        for member in members:
            name = member.filename.replace("\\", "/")
            if member.flag_bits & 0x1:
                raise ArchiveFormatError(str(archive), f"encrypted member {member.filename}")
            try:
                targets.append((member, safe_member_path(dest, name), name.endswith("/")))
            except ValueError as e:
                raise ArchiveFormatError(str(archive), str(e)) from e

            parts = [p for p in name.split("/") if p and p != "."]
            if name.endswith("/"):
                dirs.add("/".join(parts))
            else:
                files.add("/".join(parts))
            for i in range(1, len(parts)):
                dirs.add("/".join(parts[:i]))

        clashes = sorted(files & dirs)
        if clashes:
            raise ArchiveFormatError(str(archive), f"{clashes[0]} is both a file and a directory")

        dest.mkdir(parents=True, exist_ok=True)
        for member, target, is_dir in targets:
            try:
                if is_dir:
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(member) as src, open(target, "wb") as out:
                    shutil.copyfileobj(src, out)
                extracted += 1
            except (zipfile.BadZipFile, zlib.error, NotImplementedError) as e:
                raise ArchiveFormatError(str(archive), f"cannot unpack {member.filename}: {e}") from e
            except OSError as e:
                raise FileSystemError(str(target), e.strerror or str(e)) from e

    logger.info("Extracted %d files to %s", extracted, dest)
    return extracted
