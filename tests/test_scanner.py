"""Tests for the scan workflow."""
import logging
import tempfile
import threading
import unittest
from pathlib import Path

from treedupe.errors import ScanCancelled, WalkError
from treedupe.scanner import Scanner
from treedupe.settings import ScanSettings
from treedupe.utils.processor import Processor

from .test_utils import build_testdata, write_files, zip_bytes


class ScannerTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)

    def test_scan(self):
        build_testdata(self.root)

        result = Scanner().scan(self.root)

        self.assertEqual(self.root.resolve(), result.path.resolve())
        self.assertEqual(11, len(result.index))
        self.assertIs(result.root, result.index['.'])
        self.assertEqual(14, len(result.pairs))
        self.assertEqual(('dir2-contents.zip', 'dir2.zip/dir2'), result.pairs[-1].key)

    def test_scan_with_processor(self):
        build_testdata(self.root)

        with Processor(2) as processor:
            result = Scanner(processor=processor).scan(self.root)

        self.assertEqual([p.key for p in Scanner().scan(self.root).pairs], [p.key for p in result.pairs])

    def test_settings_applied(self):
        write_files(self.root, {'a/f': 'one\n', 'b/f': 'two\n', 'skipme/f': 'one\n'})
        (self.root / 'c.jar').write_bytes(zip_bytes({'f': 'one\n'}))
        settings = ScanSettings({
            'walk': {'archive_extensions': ['.jar'], 'skip_directories': ['skipme']},
            'report': {'include_disjoint': True},
        })

        result = Scanner(settings).scan(self.root)

        self.assertEqual({'.', 'a', 'b', 'c.jar'}, set(result.index))
        self.assertIn(('a', 'b'), [p.key for p in result.pairs])
        self.assertIn(('a', 'c.jar'), [p.key for p in result.pairs])

    def test_identical_threshold_setting(self):
        write_files(self.root, {'a/report.txt': 'x\n', 'b/report.bak': 'x\n'})

        default = Scanner().scan(self.root)
        lenient = Scanner(ScanSettings({'similarity': {'identical_threshold': 0.5}})).scan(self.root)

        self.assertFalse(default.pairs[0].similarity.identical)
        self.assertTrue(lenient.pairs[0].similarity.is_identical(0.5))

    def test_scan_archive(self):
        archive = self.root / 'backup.zip'
        archive.write_bytes(zip_bytes({'x/f': 'same\n', 'y/f': 'same\n'}))

        result = Scanner().scan(archive)

        self.assertEqual([('x', 'y')], [p.key for p in result.pairs])
        self.assertTrue(result.pairs[0].similarity.identical)

    def test_missing_path(self):
        with self.assertRaises(WalkError):
            Scanner().scan(self.root / 'missing')

    def test_cancel(self):
        build_testdata(self.root)
        cancel = threading.Event()
        cancel.set()

        with self.assertRaises(ScanCancelled):
            Scanner().scan(self.root, cancel)

    def test_configure_logging_without_path(self):
        self.assertFalse(Scanner().configure_logging_from_settings())

    def test_configure_logging_from_settings(self):
        log_path = self.root / 'scan.log'
        settings = ScanSettings({'logging': {'path': str(log_path), 'level': 'warning'}})

        handlers = logging.root.handlers[:]
        level = logging.root.level
        try:
            for handler in handlers:
                logging.root.removeHandler(handler)
            logging.root.setLevel(logging.NOTSET)

            self.assertTrue(Scanner(settings).configure_logging_from_settings())
            self.assertEqual(logging.WARNING, logging.root.level)
            logging.getLogger('treedupe.test').warning('written to the log file')
        finally:
            for handler in logging.root.handlers[:]:
                logging.root.removeHandler(handler)
                handler.close()
            for handler in handlers:
                logging.root.addHandler(handler)
            logging.root.setLevel(level)

        self.assertIn('written to the log file', log_path.read_text())
