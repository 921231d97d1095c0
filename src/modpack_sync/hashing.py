"""Hashing utilities for deterministic directory fingerprints.

A fingerprint is built in two stages: every file is hashed on its own, then
the per-file digests are concatenated in path order and hashed once more.
"""

from pathlib import Path
from typing import Iterable
import hashlib

from .constants import HASH_CHUNK_SIZE

DIGEST_SIZE = 32


def compute_file_digest(path: Path) -> bytes:
    """Compute SHA256 hash of file contents.

    Simple byte-for-byte hashing - any change invalidates the digest.

    Args:
        path: Path to file to hash

    Returns:
        Raw 32-byte SHA256 digest
    """
    sha256 = hashlib.sha256()
    with Path(path).open("rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            sha256.update(chunk)
    return sha256.digest()


def compute_tree_digest(file_digests: Iterable[bytes]) -> bytes:
    """Hash the concatenation of per-file digests.

    The caller is responsible for ordering. Digests are fixed-length, so plain
    concatenation is unambiguous and needs no separators.

    Args:
        file_digests: Raw per-file digests, already in canonical path order

    Returns:
        Raw 32-byte SHA256 digest. An empty input yields sha256(b"").

    Example:
        >>> compute_tree_digest([]).hex()[:8]
        'e3b0c442'
    """
    buffer = bytearray()
    for digest in file_digests:
        if len(digest) != DIGEST_SIZE:
            raise ValueError(f"Expected {DIGEST_SIZE}-byte digest, got {len(digest)} bytes")
        buffer.extend(digest)
    return hashlib.sha256(bytes(buffer)).digest()


EMPTY_TREE_DIGEST = compute_tree_digest([])


__all__ = [
    "DIGEST_SIZE",
    "EMPTY_TREE_DIGEST",
    "compute_file_digest",
    "compute_tree_digest",
]
