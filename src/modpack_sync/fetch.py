"""Remote archive fetchers.

A fetcher copies the remote archive to a local path and maps transport
failures onto the error taxonomy in `errors.py`. There is no retry logic:
a failed fetch propagates immediately.
"""

import logging
import shutil
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Optional, Protocol

import requests

from .constants import DEFAULT_TIMEOUT, DOWNLOAD_CHUNK_SIZE, USER_AGENT
from .errors import ConfigError, FileSystemError, NetworkError, NotFoundError
from .service_types import NullProgress, ProgressCallback

logger = logging.getLogger(__name__)


class ArchiveFetcher(Protocol):
    """
    Protocol for archive fetchers.

    Implementations write the complete archive to dest or raise. Making the
    write atomic is the caller's responsibility, not the fetcher's.
    """

    def fetch(self, url: str, dest: Path, progress: Optional[ProgressCallback] = None) -> None:
        """
        Download the archive at url to dest.

        Raises:
            NotFoundError: If the archive does not exist upstream
            NetworkError: If the transfer fails for any other reason
        """
        ...


class HttpArchiveFetcher:
    """Streamed HTTP(S) GET via requests."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    def fetch(self, url: str, dest: Path, progress: Optional[ProgressCallback] = None) -> None:
        progress = progress or NullProgress()
        logger.info("Downloading %s", url)
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as resp:
                if resp.status_code == 404:
                    raise NotFoundError(url)
                try:
                    resp.raise_for_status()
                except requests.exceptions.HTTPError as e:
                    raise NetworkError(url, f"HTTP {resp.status_code}", status_code=resp.status_code) from e

                total = _content_length(resp)
                received = 0
                try:
                    with open(dest, "wb") as f:
                        for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                            if not chunk:
                                continue
                            f.write(chunk)
                            received += len(chunk)
                            progress.on_download_progress(received, total)
                except OSError as e:
                    raise FileSystemError(str(dest), e.strerror or str(e)) from e
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise NetworkError(url, f"cannot connect ({e})") from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(url, str(e)) from e

        logger.debug("Downloaded %d bytes from %s", received, url)


class FileArchiveFetcher:
    """
    Copies an archive from the local file system.

    Accepts plain paths and file:// URLs (local mirrors, offline installs,
    unit tests).
    """

    def fetch(self, url: str, dest: Path, progress: Optional[ProgressCallback] = None) -> None:
        progress = progress or NullProgress()
        src = _local_path(url)
        if not src.is_file():
            raise NotFoundError(url)
        try:
            shutil.copyfile(src, dest)
        except OSError as e:
            raise FileSystemError(str(src), e.strerror or str(e)) from e
        size = dest.stat().st_size
        progress.on_download_progress(size, size)
        logger.debug("Copied archive %s (%d bytes)", src, size)


def _content_length(resp) -> Optional[int]:
    value = resp.headers.get("Content-Length")
    if value is None or not str(value).isdigit():
        return None
    return int(value)


def _local_path(url: str) -> Path:
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme == "file":
        return Path(urllib.request.url2pathname(parsed.path))
    return Path(url)


def make_fetcher(url: str, timeout: float = DEFAULT_TIMEOUT) -> ArchiveFetcher:
    """
    Create a fetcher appropriate for the URL scheme.

    Args:
        url: http(s):// URL, file:// URL or local path
        timeout: Network timeout in seconds (HTTP only)

    Returns:
        ArchiveFetcher instance

    Raises:
        ConfigError: If the scheme is not supported
    """
    scheme = urllib.parse.urlparse(url).scheme.lower()
    if scheme in ("http", "https"):
        return HttpArchiveFetcher(timeout=timeout)
    # One-letter schemes are Windows drive letters ("C:\mods.zip")
    if scheme in ("", "file") or len(scheme) == 1:
        return FileArchiveFetcher()
    raise ConfigError(f"Unsupported archive URL scheme '{scheme}': {url}")
