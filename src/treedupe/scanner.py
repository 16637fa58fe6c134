import logging
import os
import threading
from pathlib import Path
from typing import NamedTuple

from .fingerprint.hasher import FingerprintFunction, sha256_fingerprint
from .fingerprint.model import DirectoryFingerprint, FingerprintIndex
from .settings import ScanSettings
from .similarity.detector import PairSim, RedundancyDetector
from .utils.processor import Processor
from .utils.walker import Walker

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ScanResult(NamedTuple):
    """Everything one scan produced, as handed to a presentation layer."""
    path: Path
    root: DirectoryFingerprint
    index: FingerprintIndex
    pairs: list[PairSim]


class Scanner:
    """Workflow layer tying the walk and the redundancy detection together.

    A Scanner holds no results between calls; every scan() walks the
    filesystem again and returns a fresh ScanResult.
    """

    def __init__(self, settings: ScanSettings | None = None, processor: Processor | None = None,
                 fingerprint_fn: FingerprintFunction = sha256_fingerprint):
        """
        Args:
            settings: Scan configuration; defaults for everything when None
            processor: Optional process pool for hashing local files. Must use the same fingerprint function.
            fingerprint_fn: Fingerprint function for files the processor does not handle
        """
        if settings is None:
            settings = ScanSettings()

        self._settings = settings
        self._processor = processor
        self._fingerprint_fn = processor.fingerprint_fn if processor is not None else fingerprint_fn

    @property
    def settings(self) -> ScanSettings:
        return self._settings

    def configure_logging_from_settings(self) -> bool:
        """Send log output to logging.path from the settings, if one is set.

        Keeps the current level when logging is already configured, otherwise
        uses logging.level from the settings, or INFO.

        Returns:
            True if logging was configured, False otherwise
        """
        log_path = self._settings.log_path
        if not log_path:
            return False

        if logging.root.level != logging.NOTSET and logging.root.handlers:
            level = logging.root.level
        else:
            level = getattr(logging, self._settings.log_level or 'INFO')

        for handler in logging.root.handlers[:]:
            logging.root.removeHandler(handler)

        logging.basicConfig(filename=log_path, level=level, format=LOG_FORMAT)
        return True

    def walk(self, path: str | os.PathLike,
             cancel: threading.Event | None = None) -> tuple[DirectoryFingerprint, FingerprintIndex]:
        """Fingerprint a directory or zip archive.

        Raises:
            WalkError: path cannot be read at all
            ScanCancelled: cancel was set during the walk
        """
        walker = Walker(
            self._fingerprint_fn,
            archive_extensions=self._settings.archive_extensions,
            skip_directories=self._settings.skip_directories,
            processor=self._processor,
            cancel=cancel)
        return walker.walk_path(path)

    def detect(self, index: FingerprintIndex, cancel: threading.Event | None = None) -> list[PairSim]:
        detector = RedundancyDetector(
            identical_threshold=self._settings.identical_threshold,
            include_disjoint=self._settings.include_disjoint,
            cancel=cancel)
        return detector.detect(index)

    def scan(self, path: str | os.PathLike, cancel: threading.Event | None = None) -> ScanResult:
        """Walk path and compare all of its directories and archives pairwise.

        Raises:
            WalkError: path cannot be read at all
            ScanCancelled: cancel was set during the scan
        """
        path = Path(os.path.abspath(path))
        logger.info(f"Scanning {path}")
        root, index = self.walk(path, cancel)
        pairs = self.detect(index, cancel)
        logger.info(f"Completed scanning {path}: {len(pairs)} similar directory pairs")
        return ScanResult(path, root, index, pairs)
