"""Ancestry predicates on canonical paths.

Canonical paths are slash-separated and relative to a scan root, which is
written as '.'. Archive contents continue the path of the archive file, so
'photos.zip/2019' is a descendant of 'photos.zip'.
"""

from pathlib import PurePosixPath


def _segments(path: str) -> tuple[str, ...]:
    # PurePosixPath drops '.' components and trailing slashes: '.' -> (), 'a/b/' -> ('a', 'b')
    return PurePosixPath(path).parts


def is_strict_descendant(ancestor: str, candidate: str) -> bool:
    """Whether candidate lies inside ancestor at any depth.

    Matching is per path segment, so 'foo/bar' is not an ancestor of
    'foo/bar.zip' or 'foo/bar-baz'. A path is never its own strict descendant.
    """
    ancestor_segments = _segments(ancestor)
    candidate_segments = _segments(candidate)
    return (len(candidate_segments) > len(ancestor_segments)
            and candidate_segments[:len(ancestor_segments)] == ancestor_segments)


def is_descendant_or_equal(ancestor: str, candidate: str) -> bool:
    ancestor_segments = _segments(ancestor)
    return _segments(candidate)[:len(ancestor_segments)] == ancestor_segments


def are_related(a: str, b: str) -> bool:
    """Whether one of the two paths contains the other (or they are equal)."""
    return is_descendant_or_equal(a, b) or is_descendant_or_equal(b, a)
