"""Similarity measurement between two digest-ordered fingerprint streams."""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from rapidfuzz.distance import Hamming

from ..fingerprint.model import FileFingerprint

logger = logging.getLogger(__name__)

# Matched-path similarity at or above which two byte-identical trees count as identical.
# Slightly below 1.0 to absorb floating point rounding of the mean.
IDENTICAL_THRESHOLD = 0.99

# path_similarity reported when the two sides have no content in common
NO_MATCH_PATH_SIMILARITY = 0.0

PathMetric = Callable[[str, str], float]


def hamming_path_similarity(a: str, b: str) -> float:
    """Normalized Hamming similarity in [0, 1]; a length difference counts as mismatches."""
    return Hamming.normalized_similarity(a, b, pad=True)


@dataclass(frozen=True)
class Similarity:
    """Byte-level and path-level overlap of two fingerprint trees.

    Attributes:
        bytes_same: Total size of files whose digest occurs on both sides
        bytes_diff: Total size of files without a digest match on the other side, counted per side
        path_similarity: Mean path similarity over all digest-matched file pairs
    """
    bytes_same: int = 0
    bytes_diff: int = 0
    path_similarity: float = NO_MATCH_PATH_SIMILARITY

    @property
    def content_similarity(self) -> float:
        total = self.bytes_same + self.bytes_diff
        if total == 0:
            return 0.0
        return self.bytes_same / total

    def is_identical(self, threshold: float = IDENTICAL_THRESHOLD) -> bool:
        return self.bytes_diff == 0 and self.path_similarity >= threshold

    @property
    def identical(self) -> bool:
        return self.is_identical()

    def compare_content(self, other: 'Similarity') -> int:
        """Order by content ratio same / (same + diff) without dividing.

        Returns -1 if self shares proportionally fewer bytes than other, 1 if
        more, 0 if the ratios are equal. Two empty trees count as fully similar.
        """
        same_a, diff_a = (self.bytes_same, self.bytes_diff) if self.bytes_same or self.bytes_diff else (1, 0)
        same_b, diff_b = (other.bytes_same, other.bytes_diff) if other.bytes_same or other.bytes_diff else (1, 0)

        # same_a / (same_a + diff_a) < same_b / (same_b + diff_b)  <=>  diff_a * same_b > diff_b * same_a
        left = diff_a * same_b
        right = diff_b * same_a
        if left > right:
            return -1
        if left < right:
            return 1
        return 0

    def less(self, other: 'Similarity') -> bool:
        """Whether self is less similar than other; path similarity breaks ties."""
        order = self.compare_content(other)
        if order != 0:
            return order < 0
        return self.path_similarity < other.path_similarity

    def __str__(self) -> str:
        return f"<Similarity bytes={self.content_similarity:.2f} path={self.path_similarity:.2f}>"


def compare(a: Iterable[FileFingerprint], b: Iterable[FileFingerprint],
            path_metric: PathMetric = hamming_path_similarity) -> Similarity:
    """Merge-join two streams sorted ascending by digest into a Similarity.

    Both inputs must come from iterate_by_digest(); unsorted input gives
    meaningless results. A digest present on only one side is charged to
    bytes_diff. Equal digests are charged once to bytes_same and their paths
    are scored with path_metric.
    """
    it_a = iter(a)
    it_b = iter(b)
    head_a = next(it_a, None)
    head_b = next(it_b, None)

    bytes_same = 0
    bytes_diff = 0
    path_similarity_sum = 0.0
    matches = 0

    while head_a is not None or head_b is not None:
        if head_b is None or (head_a is not None and head_a.digest < head_b.digest):
            bytes_diff += head_a.size
            head_a = next(it_a, None)
        elif head_a is None or head_b.digest < head_a.digest:
            bytes_diff += head_b.size
            head_b = next(it_b, None)
        else:
            # Equal digests: sizes are equal too unless the hash collides
            bytes_same += head_a.size
            score = path_metric(head_a.path, head_b.path)
            logger.debug(f"Path similarity between {head_a.path!r} and {head_b.path!r} is {score:.2f}")
            path_similarity_sum += score
            matches += 1
            head_a = next(it_a, None)
            head_b = next(it_b, None)

    if matches == 0:
        return Similarity(bytes_same, bytes_diff, NO_MATCH_PATH_SIMILARITY)
    return Similarity(bytes_same, bytes_diff, path_similarity_sum / matches)
