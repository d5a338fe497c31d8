"""Deterministic SHA256 hashing for installed files."""

import hashlib
from pathlib import Path

CHUNK_SIZE = 8192


def hash_file(file_path: Path) -> str:
    """Hex SHA256 of the file's bytes. Missing or unreadable files raise ``OSError``."""
    digest = hashlib.sha256()
    with open(file_path, "rb") as handle:
        for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def hash_bytes(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()
