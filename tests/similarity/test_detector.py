"""Tests for the all-pairs redundancy detection."""
import tempfile
import threading
import unittest
from pathlib import Path

from treedupe.errors import ScanCancelled
from treedupe.similarity.detector import (
    PairSim, RedundancyDetector, ancestor_and_match, both_ancestors, both_descendants, descendant_and_ancestor,
    descendant_and_match, detect)
from treedupe.similarity.measure import Similarity
from treedupe.similarity.path import are_related
from treedupe.utils.walker import Walker

from ..test_utils import build_testdata, directory, fingerprint_of


def shared_subdirectory_index():
    """a/b and foo/b hold the same file; a and foo each add a file of their own."""
    a_b = directory('b', [fingerprint_of('x', 'shared\n')])
    foo_b = directory('b', [fingerprint_of('x', 'shared\n')])
    a = directory('a', [fingerprint_of('only-a', 'alpha\n')], [a_b])
    foo = directory('foo', [fingerprint_of('only-foo', 'omega\n')], [foo_b])
    return {'a': a, 'a/b': a_b, 'foo': foo, 'foo/b': foo_b}


def triplicate_index():
    """Three identical directories, each with an identical subdirectory."""
    index = {}
    for name in ('x', 'y', 'z'):
        sub = directory('sub', [fingerprint_of('inner', 'inner\n')])
        index[name] = directory(name, [fingerprint_of('outer', 'outer\n')], [sub])
        index[f'{name}/sub'] = sub
    return index


def same_directory_three_routes_index():
    """One single-file directory, extracted, inside an archive, and copied below another directory."""
    def copy(name):
        return directory(name, [fingerprint_of('file1.txt', 'file contents\n')])

    extracted = copy('dir-extracted')
    archived = copy('dir-in-poorly-named-zip.zip')
    nested = copy('copy-of-same-dir')
    other = directory('otherdir', [], [nested])
    return {
        '.': directory('.', [], [archived, extracted, other]),
        'dir-in-poorly-named-zip.zip': archived,
        'dir-extracted': extracted,
        'otherdir': other,
        'otherdir/copy-of-same-dir': nested,
    }


def nested_archive_index():
    """dir1/dir2 and its copy inside dir2.zip, each with subdirectories dir3 and dir4."""
    dir3 = directory('dir3', [fingerprint_of('c.txt', 'c\n')])
    dir4 = directory('dir4', [fingerprint_of('d.txt', 'd\n')])
    dir2 = directory('dir2', [fingerprint_of('b.txt', 'b\n')], [dir3, dir4])
    dir1 = directory('dir1', [fingerprint_of('a', 'a\n'), fingerprint_of('foo', 'foo\n')], [dir2])
    archive = directory('dir2.zip', [], [dir2])
    return {
        '.': directory('.', [], [dir1, archive]),
        'dir1': dir1,
        'dir1/dir2': dir2,
        'dir1/dir2/dir3': dir3,
        'dir1/dir2/dir4': dir4,
        'dir2.zip': archive,
        'dir2.zip/dir2': dir2,
        'dir2.zip/dir2/dir3': dir3,
        'dir2.zip/dir2/dir4': dir4,
    }


class RulesTest(unittest.TestCase):
    identical = ('a/b', 'foo/b')

    def test_both_descendants(self):
        self.assertTrue(both_descendants(self.identical, ('a/b/c', 'foo/b/c')))
        self.assertTrue(both_descendants(self.identical, ('foo/b/c', 'a/b/d')))
        self.assertFalse(both_descendants(self.identical, ('a/b/c', 'a/b/d')))

    def test_descendant_and_match(self):
        self.assertTrue(descendant_and_match(self.identical, ('a/b', 'foo/b/c')))
        self.assertTrue(descendant_and_match(self.identical, ('a/b/c', 'foo/b')))
        self.assertFalse(descendant_and_match(self.identical, ('a/b', 'foo/b')))

    def test_descendant_and_ancestor(self):
        self.assertTrue(descendant_and_ancestor(self.identical, ('a/b/c', 'foo')))
        self.assertTrue(descendant_and_ancestor(self.identical, ('a', 'foo/b/c')))
        self.assertFalse(descendant_and_ancestor(self.identical, ('a', 'foo')))

    def test_both_ancestors(self):
        self.assertTrue(both_ancestors(self.identical, ('a', 'foo')))
        self.assertFalse(both_ancestors(self.identical, ('a', 'bar')))

    def test_ancestor_and_match(self):
        self.assertTrue(ancestor_and_match(self.identical, ('a', 'foo/b')))
        self.assertTrue(ancestor_and_match(self.identical, ('a/b', 'foo')))
        self.assertFalse(ancestor_and_match(self.identical, ('a', 'foo')))


class DetectTest(unittest.TestCase):
    def test_ancestors_of_identical_pair_are_dropped(self):
        """Only the identical pair survives; pairs involving the parents add nothing."""
        pairs = detect(shared_subdirectory_index())

        self.assertEqual([('a/b', 'foo/b')], [p.key for p in pairs])
        self.assertTrue(pairs[0].similarity.identical)

    def test_same_directory_via_three_routes(self):
        """The parent of the nested copy matches too, but only the copies themselves are reported."""
        pairs = detect(same_directory_three_routes_index())

        self.assertEqual([
            PairSim('dir-extracted', 'dir-in-poorly-named-zip.zip', Similarity(14, 0, 1.0)),
            PairSim('dir-extracted', 'otherdir/copy-of-same-dir', Similarity(14, 0, 1.0)),
            PairSim('dir-in-poorly-named-zip.zip', 'otherdir/copy-of-same-dir', Similarity(14, 0, 1.0)),
        ], pairs)

    def test_nested_copy_inside_archive(self):
        """A copy inside an archive elides its subdirectories and every pair with their ancestors."""
        pairs = detect(nested_archive_index())

        self.assertEqual([('dir1/dir2', 'dir2.zip/dir2')], [p.key for p in pairs])
        self.assertEqual(Similarity(6, 0, 1.0), pairs[0].similarity)

    def test_identical_directories(self):
        """Each pair of identical directories is reported; their subdirectories are elided."""
        pairs = detect(triplicate_index())

        self.assertEqual([('x', 'y'), ('x', 'z'), ('y', 'z')], [p.key for p in pairs])
        self.assertTrue(all(p.similarity.identical for p in pairs))

    def test_disjoint_pairs_excluded_by_default(self):
        index = {
            'a': directory('a', [fingerprint_of('f', 'one\n')]),
            'b': directory('b', [fingerprint_of('f', 'two\n')]),
        }

        self.assertEqual([], detect(index))

        pairs = detect(index, include_disjoint=True)
        self.assertEqual([PairSim('a', 'b', Similarity(0, 8, 0.0))], pairs)

    def test_single_directory(self):
        self.assertEqual([], detect({'.': directory('.', [fingerprint_of('f', 'one\n')])}))

    def test_identical_threshold(self):
        """A lower threshold turns byte-identical but renamed directories into identical ones."""
        index = {
            'a': directory('a', [fingerprint_of('report.txt', 'x\n')]),
            'b': directory('b', [fingerprint_of('report.bak', 'x\n')]),
        }

        self.assertFalse(detect(index)[0].similarity.identical)
        pairs = RedundancyDetector(identical_threshold=0.5).detect(index)
        self.assertTrue(pairs[0].similarity.is_identical(0.5))

    def test_cancel(self):
        cancel = threading.Event()
        cancel.set()

        with self.assertRaises(ScanCancelled):
            detect(triplicate_index(), cancel=cancel)


class DetectTestdataTest(unittest.TestCase):
    """Detection over a walked tree mixing directories and zip archives."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        build_testdata(Path(self._tmp.name))
        _, self.index = Walker().walk_path(self._tmp.name)

    def test_report(self):
        pairs = detect(self.index)

        self.assertEqual([
            ('dir1', 'dir2-and-more'),
            ('dir1.zip', 'dir2-and-more'),
            ('dir1.zip/dir1', 'dir2-and-more'),
            ('dir2-and-more', 'dir2.zip'),
            ('dir1.zip/dir1/dir2', 'dir2-and-more'),
            ('dir1/dir2', 'dir2-and-more'),
            ('dir2-and-more', 'dir2-contents.zip'),
            ('dir2-and-more', 'dir2.zip/dir2'),
            ('dir1', 'dir1.zip/dir1'),
            ('dir1.zip/dir1/dir2', 'dir2-contents.zip'),
            ('dir1.zip/dir1/dir2', 'dir2.zip/dir2'),
            ('dir1/dir2', 'dir2-contents.zip'),
            ('dir1/dir2', 'dir2.zip/dir2'),
            ('dir2-contents.zip', 'dir2.zip/dir2'),
        ], [p.key for p in pairs])
        self.assertEqual(6, sum(1 for p in pairs if p.similarity.identical))

    def test_no_related_pairs(self):
        for pair in detect(self.index, include_disjoint=True):
            self.assertFalse(are_related(pair.path_a, pair.path_b), pair.key)

    def test_sorted_least_similar_first(self):
        pairs = detect(self.index, include_disjoint=True)

        for earlier, later in zip(pairs, pairs[1:]):
            self.assertFalse(later.similarity.less(earlier.similarity), (earlier.key, later.key))

    def test_include_disjoint_adds_unrelated_directory(self):
        pairs = detect(self.index, include_disjoint=True)

        disjoint = [p for p in pairs if p.similarity.bytes_same == 0]
        self.assertTrue(disjoint)
        self.assertTrue(all('unrelated' in p.key for p in disjoint))
        self.assertEqual(pairs[:len(disjoint)], disjoint)
