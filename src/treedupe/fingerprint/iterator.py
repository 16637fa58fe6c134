"""Flattening of a fingerprint tree into a digest-ordered stream."""

import heapq
import posixpath
from operator import attrgetter
from typing import Iterable, Iterator

from .model import DirectoryFingerprint, FileFingerprint

_by_digest = attrgetter('digest')


def _prefixed(prefix: str, fingerprints: Iterable[FileFingerprint]) -> Iterator[FileFingerprint]:
    for fingerprint in fingerprints:
        yield fingerprint._replace(path=posixpath.join(prefix, fingerprint.path))


def iterate_by_digest(tree: DirectoryFingerprint) -> Iterator[FileFingerprint]:
    """Yield every file in the tree exactly once, in ascending digest order.

    The node's own files and each subdirectory form one sorted source apiece;
    the sources are combined with a k-way heap merge. Equal digests come out in
    registration order: own files first, then subdirectories in tree order.
    Yielded paths are relative to ``tree`` (its own name is not included).

    The returned iterator is lazy and single-pass. Call again for another pass.
    """
    sources = [_prefixed('', sorted(tree.files, key=_by_digest))]
    sources.extend(_prefixed(child.path, iterate_by_digest(child)) for child in tree.subdirectories)
    return heapq.merge(*sources, key=_by_digest)
