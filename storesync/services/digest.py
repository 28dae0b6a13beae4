"""
FileDigest - size ceiling and content hashing.

The size check runs on a stat result so oversized files are rejected
before a single byte is read.
"""
import asyncio
import hashlib
import logging
import os
from pathlib import Path
from typing import Union

from blake3 import blake3

from ..errors import SizeExceeded
from ..models import DEFAULT_MAX_FILE_SIZE_BYTES

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536  # 64KB


def validate_size(
    path: Union[str, Path],
    stat_result: os.stat_result,
    limit_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES,
) -> None:
    """Raise SizeExceeded if the file is larger than limit_bytes."""
    if stat_result.st_size > limit_bytes:
        raise SizeExceeded(str(path), stat_result.st_size, limit_bytes)


def _new_hasher(algorithm: str):
    if algorithm == "sha256":
        return hashlib.sha256()
    if algorithm == "blake3":
        return blake3()
    raise ValueError(f"unsupported hash algorithm: {algorithm}")


def hash_bytes(data: bytes, algorithm: str = "sha256") -> str:
    """Hex digest of an in-memory byte string."""
    hasher = _new_hasher(algorithm)
    hasher.update(data)
    return hasher.hexdigest()


async def hash_file(path: Union[str, Path], algorithm: str = "sha256") -> str:
    """Hex digest of a file's full content, read in a worker thread."""
    hasher = _new_hasher(algorithm)

    def _hash_file():
        with open(path, "rb") as f:
            while True:
                chunk = f.read(CHUNK_SIZE)
                if not chunk:
                    break
                hasher.update(chunk)
        return hasher.hexdigest()

    digest = await asyncio.to_thread(_hash_file)
    logger.debug("Hashed %s (%s) -> %s...", Path(path).name, algorithm, digest[:16])
    return digest


class FileDigest:
    """Size validation and hashing bound to one configuration."""

    def __init__(self, limit_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES, algorithm: str = "sha256"):
        # Fail on a bad algorithm at construction, not on the first file
        _new_hasher(algorithm)
        self.limit_bytes = limit_bytes
        self.algorithm = algorithm

    def validate_size(self, path: Union[str, Path], stat_result: os.stat_result) -> None:
        validate_size(path, stat_result, self.limit_bytes)

    async def digest(self, path: Union[str, Path]) -> str:
        return await hash_file(path, self.algorithm)
