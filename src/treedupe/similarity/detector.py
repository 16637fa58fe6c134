"""All-pairs redundancy detection over a fingerprint index.

Every directory and archive of a scan is compared with every other one that is
not its ancestor or descendant. Once two directories are known to be identical,
comparisons involving their contents, or one of them and an ancestor of the
other, carry no new information and are elided. With identical directories
a/b and foo/b the pairs relate to the identical pair as follows:

    a      foo      both ancestors           dropped after the main pass
    a      foo/b    ancestor and match       dropped after the main pass
    a      foo/b/c  ancestor and descendant  dropped after the main pass
    a/b    foo/b    identical                reported
    a/b    foo/b/c  descendant and match     elided during the main pass
    a/b/c  foo      descendant and ancestor  elided during the main pass
    a/b/c  foo/b/c  both descendants         elided during the main pass

Keys are visited in sorted order so ancestors come before their descendants.
Pairs that sort before the identical pair cannot be recognized when they are
computed, hence the cleanup pass over the collected results.
"""

import functools
import itertools
import logging
import threading
from dataclasses import dataclass

from ..errors import InvariantViolation, ScanCancelled
from ..fingerprint.iterator import iterate_by_digest
from ..fingerprint.model import FingerprintIndex
from .measure import IDENTICAL_THRESHOLD, Similarity, compare
from .path import are_related, is_strict_descendant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairSim:
    """Similarity of two directories of one scan; path_a sorts before path_b."""
    path_a: str
    path_b: str
    similarity: Similarity

    @property
    def key(self) -> tuple[str, str]:
        return self.path_a, self.path_b


def both_descendants(identical: tuple[str, str], pair: tuple[str, str]) -> bool:
    """Each side of pair lies inside a different side of identical."""
    i1, i2 = identical
    k1, k2 = pair
    return ((is_strict_descendant(i1, k1) and is_strict_descendant(i2, k2)) or
            (is_strict_descendant(i1, k2) and is_strict_descendant(i2, k1)))


def descendant_and_match(identical: tuple[str, str], pair: tuple[str, str]) -> bool:
    """One side of pair lies inside one side of identical, the other side equals the other."""
    i1, i2 = identical
    k1, k2 = pair
    return ((is_strict_descendant(i1, k1) and i2 == k2) or
            (is_strict_descendant(i1, k2) and i2 == k1) or
            (is_strict_descendant(i2, k1) and i1 == k2) or
            (is_strict_descendant(i2, k2) and i1 == k1))


def descendant_and_ancestor(identical: tuple[str, str], pair: tuple[str, str]) -> bool:
    """One side of pair lies inside one side of identical, the other side contains the other."""
    i1, i2 = identical
    k1, k2 = pair
    return ((is_strict_descendant(i1, k1) and is_strict_descendant(k2, i2)) or
            (is_strict_descendant(i1, k2) and is_strict_descendant(k1, i2)) or
            (is_strict_descendant(i2, k1) and is_strict_descendant(k2, i1)) or
            (is_strict_descendant(i2, k2) and is_strict_descendant(k1, i1)))


def both_ancestors(identical: tuple[str, str], pair: tuple[str, str]) -> bool:
    """Each side of identical lies inside a different side of pair."""
    return both_descendants(pair, identical)


def ancestor_and_match(identical: tuple[str, str], pair: tuple[str, str]) -> bool:
    """One side of pair contains one side of identical, the other side equals the other."""
    return descendant_and_match(pair, identical)


# Recognizable as soon as the identical pair is known
IN_PROCESS_RULES = {
    'both descendants': both_descendants,
    'descendant and match': descendant_and_match,
    'descendant and ancestor': descendant_and_ancestor,
}

# Applied to the collected results once all identical pairs are known
POST_PROCESS_RULES = {
    'both ancestors': both_ancestors,
    'ancestor and match': ancestor_and_match,
    'ancestor and descendant': descendant_and_ancestor,
}


def _matching_rule(rules, identical_pairs, pair: tuple[str, str]) -> tuple[str, tuple[str, str]] | None:
    for identical in identical_pairs:
        for name, rule in rules.items():
            if rule(identical, pair):
                return name, identical
    return None


def _report_order(p1: PairSim, p2: PairSim) -> int:
    order = p1.similarity.compare_content(p2.similarity)
    if order != 0:
        return order
    if p1.similarity.path_similarity != p2.similarity.path_similarity:
        return -1 if p1.similarity.path_similarity < p2.similarity.path_similarity else 1
    return (p1.key > p2.key) - (p1.key < p2.key)


class RedundancyDetector:
    """Computes the pairwise similarity report for one fingerprint index.

    Args:
        identical_threshold: Minimum mean path similarity for byte-identical pairs to count as identical
        include_disjoint: Keep pairs that share no content at all (dropped by default)
        cancel: Checked before each pair; when set, detection stops with ScanCancelled
    """

    def __init__(self, *, identical_threshold: float = IDENTICAL_THRESHOLD, include_disjoint: bool = False,
                 cancel: threading.Event | None = None):
        self._identical_threshold = identical_threshold
        self._include_disjoint = include_disjoint
        self._cancel = cancel

    def detect(self, index: FingerprintIndex) -> list[PairSim]:
        keys = sorted(index)

        seen: dict[tuple[str, str], PairSim] = {}
        identical: dict[tuple[str, str], PairSim] = {}
        collected: list[PairSim] = []

        for k1, k2 in itertools.combinations(keys, 2):
            if self._cancel is not None and self._cancel.is_set():
                raise ScanCancelled("detection cancelled")

            # Comparing a directory with its own subtree says nothing about redundancy
            if are_related(k1, k2):
                continue

            pair = (k1, k2)
            if pair in seen or pair in identical:
                continue

            match = _matching_rule(IN_PROCESS_RULES, identical, pair)
            if match is not None:
                rule, identical_pair = match
                logger.debug(f"In-process drop: {identical_pair} were identical, skipping {rule} {k1} {k2}")
                continue

            pair_sim = PairSim(k1, k2, compare(iterate_by_digest(index[k1]), iterate_by_digest(index[k2])))
            if pair_sim.similarity.is_identical(self._identical_threshold):
                identical[pair] = pair_sim
            else:
                seen[pair] = pair_sim

            if pair_sim.similarity.bytes_same == 0 and not self._include_disjoint:
                continue

            collected.append(pair_sim)

        results = []
        for pair_sim in collected:
            match = _matching_rule(POST_PROCESS_RULES, identical, pair_sim.key)
            if match is None:
                results.append(pair_sim)
                continue

            rule, identical_pair = match
            if rule == 'both ancestors' and pair_sim.key in identical:
                raise InvariantViolation(
                    f"{pair_sim.key} are identical ancestors of identical pair {identical_pair}; "
                    f"the descendants should have been elided")
            logger.debug(f"Post-process drop: {identical_pair} were identical, skipping {rule} {pair_sim.path_a} "
                         f"{pair_sim.path_b}")

        results.sort(key=functools.cmp_to_key(_report_order))
        logger.info(f"Compared {len(seen) + len(identical)} directory pairs of {len(keys)} directories, "
                    f"{len(identical)} identical, {len(results)} reported")
        return results


def detect(index: FingerprintIndex, *, identical_threshold: float = IDENTICAL_THRESHOLD,
           include_disjoint: bool = False, cancel: threading.Event | None = None) -> list[PairSim]:
    """Compare every unrelated pair of directories in index; least similar pairs first."""
    detector = RedundancyDetector(identical_threshold=identical_threshold, include_disjoint=include_disjoint,
                                  cancel=cancel)
    return detector.detect(index)
