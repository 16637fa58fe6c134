"""Fingerprint data structures for files and directory trees."""

from dataclasses import dataclass, field
from typing import NamedTuple

ROOT_PATH = '.'


class FileFingerprint(NamedTuple):
    """Content identity of a single file.

    Attributes:
        path: Basename while the fingerprint is stored in a DirectoryFingerprint.
              Relative path from the iteration root when produced by iterate_by_digest().
        size: Content length in bytes
        digest: Content hash; equal digests are treated as equal content
    """
    path: str
    size: int
    digest: bytes

    def __str__(self) -> str:
        return f"FileFingerprint {self.size:>10} {self.digest.hex()} {self.path}"


@dataclass
class DirectoryFingerprint:
    """Fingerprints of a directory (or archive) and everything below it.

    Each node exclusively owns its files and subdirectories. A zip archive is
    represented exactly like a directory whose path is the archive's file name.

    Attributes:
        path: Basename of the directory, or '.' for a scan root
        files: Fingerprints of the regular files directly in this directory, in listing order
        subdirectories: Child nodes, in listing order
    """
    path: str
    files: list[FileFingerprint] = field(default_factory=list)
    subdirectories: list['DirectoryFingerprint'] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.files) + sum(d.total_size for d in self.subdirectories)

    @property
    def file_count(self) -> int:
        return len(self.files) + sum(d.file_count for d in self.subdirectories)

    def renamed(self, path: str) -> 'DirectoryFingerprint':
        """Return a shallow copy of this node carrying a different basename."""
        return DirectoryFingerprint(path, list(self.files), list(self.subdirectories))

    def describe(self, indent: str = '') -> str:
        lines = [f"{indent}DirectoryFingerprint path: {self.path!r}", f"{indent}  Files:"]
        lines.extend(f"{indent}     {f}" for f in self.files)
        lines.append(f"{indent}  Directories:")
        for subdirectory in self.subdirectories:
            lines.append(subdirectory.describe(indent + '    '))
        return '\n'.join(lines)


# Canonical path (relative to the scan root, '.' for the root itself) -> node rooted there
FingerprintIndex = dict[str, DirectoryFingerprint]
