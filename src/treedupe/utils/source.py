"""Read-only hierarchical byte sources: real directories and zip archives.

Paths handed to a Source are relative to its root, slash separated, with the
root itself written as '.'.
"""
import io
import logging
import os
import posixpath
import zipfile
from abc import ABC, abstractmethod
from enum import StrEnum
from pathlib import Path
from typing import BinaryIO, NamedTuple

logger = logging.getLogger(__name__)


class EntryKind(StrEnum):
    FILE = 'file'
    DIRECTORY = 'directory'
    OTHER = 'other'


class Entry(NamedTuple):
    name: str
    kind: EntryKind


def join(path: str, name: str) -> str:
    """Join a source-relative path and a child name; '.' joins to the bare name."""
    if path == '.':
        return name
    return posixpath.join(path, name)


class Source(ABC):
    """A tree of directories and readable files."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable location of the source root, used in log messages."""

    @abstractmethod
    def list_entries(self, path: str) -> list[Entry]:
        """List the entries of a directory, sorted by name.

        Raises:
            OSError: The directory does not exist or cannot be listed
        """

    @abstractmethod
    def open(self, path: str) -> BinaryIO:
        """Open a file for binary reading."""

    def local_path(self, path: str) -> Path | None:
        """Location on the local filesystem, if the entry is a plain file there."""
        return None

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class DirectorySource(Source):
    """A directory on the local filesystem. Symlinks are reported as OTHER and never followed."""

    def __init__(self, root: str | os.PathLike):
        self._root = Path(root)

    @property
    def name(self) -> str:
        return str(self._root)

    def _resolve(self, path: str) -> Path:
        return self._root if path == '.' else self._root / path

    def list_entries(self, path: str) -> list[Entry]:
        entries = []
        with os.scandir(self._resolve(path)) as it:
            for dir_entry in it:
                if dir_entry.is_symlink():
                    kind = EntryKind.OTHER
                elif dir_entry.is_dir(follow_symlinks=False):
                    kind = EntryKind.DIRECTORY
                elif dir_entry.is_file(follow_symlinks=False):
                    kind = EntryKind.FILE
                else:
                    kind = EntryKind.OTHER
                entries.append(Entry(dir_entry.name, kind))
        entries.sort()
        return entries

    def open(self, path: str) -> BinaryIO:
        return open(self._resolve(path), 'rb')

    def local_path(self, path: str) -> Path | None:
        return self._resolve(path)


class ZipSource(Source):
    """The contents of a zip archive, read without extracting anything to disk.

    Directories that only exist implicitly (as a prefix of member names) are
    listed like explicit ones. When a name occurs more than once, the first
    occurrence decides whether it is a file or a directory and the last member
    with that name supplies the file content.
    """

    def __init__(self, archive: zipfile.ZipFile, name: str):
        self._archive = archive
        self._name = name
        self._members: dict[str, zipfile.ZipInfo] = {}
        self._listing: dict[str, dict[str, EntryKind]] = {'.': {}}

        for info in archive.infolist():
            parts = [part for part in info.filename.split('/') if part not in ('', '.')]
            parent = '.'
            for depth, part in enumerate(parts):
                is_leaf = depth == len(parts) - 1
                kind = EntryKind.FILE if is_leaf and not info.is_dir() else EntryKind.DIRECTORY
                children = self._listing.setdefault(parent, {})
                kind = children.setdefault(part, kind)
                child = join(parent, part)
                if kind is EntryKind.DIRECTORY:
                    self._listing.setdefault(child, {})
                elif is_leaf:
                    self._members[child] = info
                else:
                    # A file and a directory prefix share this name; the file was seen first
                    break
                parent = child

    @classmethod
    def from_path(cls, path: str | os.PathLike) -> 'ZipSource':
        return cls(zipfile.ZipFile(path), str(path))

    @classmethod
    def from_stream(cls, stream: BinaryIO, name: str) -> 'ZipSource':
        """Load an archive fully into memory; zip needs random access the stream may not offer."""
        return cls(zipfile.ZipFile(io.BytesIO(stream.read())), name)

    @property
    def name(self) -> str:
        return self._name

    def list_entries(self, path: str) -> list[Entry]:
        try:
            children = self._listing[path]
        except KeyError:
            raise FileNotFoundError(f"{self._name}: no directory {path!r} in archive") from None
        return sorted(Entry(name, kind) for name, kind in children.items())

    def open(self, path: str) -> BinaryIO:
        try:
            info = self._members[path]
        except KeyError:
            raise FileNotFoundError(f"{self._name}: no file {path!r} in archive") from None
        return self._archive.open(info)

    def close(self):
        self._archive.close()
