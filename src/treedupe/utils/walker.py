"""Traversal building the fingerprint tree and index of a scan root.

A Walker visits a Source depth first. Every directory is built completely
(children first) before it is handed to its parent, and every frame keeps the
index entries of its subtree to itself until it finishes. A subtree that fails
is dropped as a whole: neither its node nor any index entry below it survives.
The scan root cannot be dropped, so an unreadable file directly in it is left
out on its own.
Zip archives are opened in memory and walked as nested sources; their index
entries are re-keyed under the archive's path.
"""
import logging
import os
import posixpath
import threading
import zipfile
import zlib
from collections import ChainMap
from pathlib import Path
from typing import Iterable

from ..errors import ScanCancelled, SubtreeSkipped, WalkError
from ..fingerprint.hasher import FingerprintFunction, sha256_fingerprint
from ..fingerprint.model import ROOT_PATH, DirectoryFingerprint, FileFingerprint, FingerprintIndex
from .processor import Processor
from .source import DirectorySource, EntryKind, Source, ZipSource, join

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_EXTENSIONS = ('.zip',)

# Metadata-only directories that never hold user data
DEFAULT_SKIP_DIRECTORIES = ('__MACOSX',)

# Errors from reading an entry: I/O failures and damaged or unsupported archive members
READ_ERRORS = (OSError, EOFError, zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError)


class Walker:
    """Builds DirectoryFingerprint trees.

    Args:
        fingerprint_fn: Computes the fingerprint of one file from its basename and content stream
        archive_extensions: File name suffixes (case-insensitive) walked as zip archives
        skip_directories: Directory names that are never descended into
        processor: Optional process pool used for files on the local filesystem
        cancel: Checked on entering each directory; when set, the walk stops with ScanCancelled
    """

    def __init__(self, fingerprint_fn: FingerprintFunction = sha256_fingerprint, *,
                 archive_extensions: Iterable[str] = DEFAULT_ARCHIVE_EXTENSIONS,
                 skip_directories: Iterable[str] = DEFAULT_SKIP_DIRECTORIES,
                 processor: Processor | None = None,
                 cancel: threading.Event | None = None):
        self._fingerprint_fn = fingerprint_fn
        self._archive_extensions = tuple(ext.lower() for ext in archive_extensions)
        self._skip_directories = frozenset(skip_directories)
        self._processor = processor
        self._cancel = cancel

    def is_archive(self, name: str) -> bool:
        return name.lower().endswith(self._archive_extensions)

    def walk(self, source: Source) -> tuple[DirectoryFingerprint, FingerprintIndex]:
        """Fingerprint everything below the root of source.

        Returns:
            The root node (named '.') and the index of every directory and
            archive encountered, keyed by canonical path ('.' for the root)

        Files directly in the root that cannot be read are left out with a
        warning; the rest of the tree is still walked.

        Raises:
            WalkError: The root cannot be listed
            ScanCancelled: The cancel event was set
        """
        return self._walk_source(source, skip_unreadable_files=True)

    def _walk_source(self, source: Source,
                     skip_unreadable_files: bool) -> tuple[DirectoryFingerprint, FingerprintIndex]:
        logger.info(f"Walking {source.name}")
        try:
            root, index = self._walk_directory(source, ROOT_PATH, ROOT_PATH, ChainMap(),
                                               skip_unreadable_files=skip_unreadable_files)
        except SubtreeSkipped as e:
            logger.error(f"Cannot walk {source.name}: {e}")
            raise WalkError(source.name, e.cause or e) from e
        logger.info(f"Completed walking {source.name}: {len(index)} directories, {root.file_count} files")
        return root, index

    def walk_path(self, path: str | os.PathLike) -> tuple[DirectoryFingerprint, FingerprintIndex]:
        """Walk a local directory, or a local zip archive as if it were one."""
        path = Path(path)
        if path.is_file() and self.is_archive(path.name):
            try:
                source = ZipSource.from_path(path)
            except READ_ERRORS as e:
                logger.error(f"Cannot open archive {path}: {e}")
                raise WalkError(str(path), e) from e
        else:
            source = DirectorySource(path)

        with source:
            return self.walk(source)

    def _walk_directory(self, source: Source, path: str, name: str, known: ChainMap,
                        skip_unreadable_files: bool = False) -> tuple[DirectoryFingerprint, FingerprintIndex]:
        if self._cancel is not None and self._cancel.is_set():
            raise ScanCancelled(f"walk of {source.name} cancelled at {path}")

        try:
            entries = source.list_entries(path)
        except READ_ERRORS as e:
            raise SubtreeSkipped(path, "cannot list directory", e) from e

        # Entries of this subtree; merged into the parent only when the whole subtree succeeded
        subtree: ChainMap = known.new_child()
        node = DirectoryFingerprint(name)
        file_paths = []

        for entry in entries:
            entry_path = join(path, entry.name)

            if entry.kind is EntryKind.DIRECTORY:
                if entry.name in self._skip_directories:
                    logger.info(f"{source.name}: not descending into metadata directory {entry_path}")
                    continue
                build = self._walk_directory
            elif entry.kind is EntryKind.FILE and self.is_archive(entry.name):
                build = self._walk_archive
            elif entry.kind is EntryKind.FILE:
                file_paths.append(entry_path)
                continue
            else:
                logger.debug(f"{source.name}: ignoring {entry_path}, not a regular file or directory")
                continue

            if entry_path in subtree:
                logger.debug(f"{source.name}: {entry_path} was already fingerprinted, reusing it")
                node.subdirectories.append(subtree[entry_path])
                continue

            try:
                child, child_index = build(source, entry_path, entry.name, subtree)
            except SubtreeSkipped as e:
                logger.warning(f"{source.name}: skipping {entry_path}: {e}")
                continue

            subtree.maps[0].update(child_index)
            node.subdirectories.append(child)

        node.files = self._fingerprint_files(source, path, file_paths, skip_unreadable_files)

        subtree.maps[0][path] = node
        logger.debug(f"{source.name}: completed {path} with {len(node.files)} files and "
                     f"{len(node.subdirectories)} directories")
        return node, subtree.maps[0]

    def _walk_archive(self, source: Source, path: str, name: str,
                      known: ChainMap) -> tuple[DirectoryFingerprint, FingerprintIndex]:
        logger.debug(f"{source.name}: fingerprinting {path} as an archive")
        location = f"{source.name}/{path}"
        try:
            with source.open(path) as stream:
                archive = ZipSource.from_stream(stream, location)
        except READ_ERRORS as e:
            raise SubtreeSkipped(path, "cannot open archive", e) from e

        with archive:
            try:
                root, archive_index = self._walk_source(archive, skip_unreadable_files=False)
            except WalkError as e:
                raise SubtreeSkipped(path, "cannot walk archive", e.cause) from e

        # Inside the archive its root is '.'; outside it is known by the archive's name
        root.path = name
        index = {path if key == ROOT_PATH else posixpath.join(path, key): value
                 for key, value in archive_index.items()}
        return root, index

    def _fingerprint_files(self, source: Source, directory: str, paths: list[str],
                           skip_unreadable_files: bool = False) -> list[FileFingerprint]:
        """Fingerprint files in listing order; vanished files are left out.

        With skip_unreadable_files, a file that cannot be read is left out as well.

        Raises:
            SubtreeSkipped: A file could not be read, so directory is incomplete
        """
        results: list[FileFingerprint | None] | None = None
        local_paths = [source.local_path(path) for path in paths]
        if self._processor is not None and paths and all(p is not None for p in local_paths):
            try:
                results = self._processor.fingerprint(local_paths)
            except READ_ERRORS as e:
                if not skip_unreadable_files:
                    raise SubtreeSkipped(directory, "cannot read file", e) from e
                # The pool reports only the first failure; find the unreadable files one by one
                logger.debug(f"{source.name}: parallel fingerprinting of {directory} failed, retrying in-process")

        if results is not None:
            read = list(zip(paths, results))
        else:
            read = []
            for path in paths:
                try:
                    read.append((path, self._fingerprint_file(source, directory, path)))
                except SubtreeSkipped as e:
                    if not skip_unreadable_files:
                        raise
                    logger.warning(f"{source.name}: skipping unreadable file {path}: {e.cause}")

        fingerprints = []
        for path, fingerprint in read:
            if fingerprint is None:
                logger.warning(f"{source.name}: {path} disappeared while walking, skipping this file")
                continue
            fingerprints.append(fingerprint)
        return fingerprints

    def _fingerprint_file(self, source: Source, directory: str, path: str) -> FileFingerprint | None:
        try:
            with source.open(path) as stream:
                return self._fingerprint_fn(posixpath.basename(path), stream)
        except FileNotFoundError:
            return None
        except READ_ERRORS as e:
            raise SubtreeSkipped(directory, f"cannot read file {path}", e) from e


def walk(source: Source, fingerprint_fn: FingerprintFunction = sha256_fingerprint,
         **options) -> tuple[DirectoryFingerprint, FingerprintIndex]:
    """Fingerprint the tree of source; see Walker for the options."""
    return Walker(fingerprint_fn, **options).walk(source)
