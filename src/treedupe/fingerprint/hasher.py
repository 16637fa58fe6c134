import hashlib
import pathlib
from typing import BinaryIO, Callable

from .model import FileFingerprint

CHUNK_SIZE = 1024 * 1024

# (basename, readable binary stream) -> FileFingerprint
FingerprintFunction = Callable[[str, BinaryIO], FileFingerprint]


def sha256_fingerprint(name: str, stream: BinaryIO) -> FileFingerprint:
    """Fingerprint a stream by its SHA-256 digest and byte count."""
    digest = hashlib.sha256()
    size = 0
    for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
        digest.update(chunk)
        size += len(chunk)
    return FileFingerprint(name, size, digest.digest())


def sha256_fingerprint_for_path(path: pathlib.Path) -> FileFingerprint:
    with open(path, "rb") as f:
        # noinspection PyTypeChecker
        return sha256_fingerprint(path.name, f)
