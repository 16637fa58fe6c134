import logging
import multiprocessing
import pathlib
from multiprocessing.pool import Pool

from ..fingerprint.hasher import FingerprintFunction, sha256_fingerprint
from ..fingerprint.model import FileFingerprint

logger = logging.getLogger(__name__)


def fingerprint_path(fingerprint_fn: FingerprintFunction, path: pathlib.Path) -> FileFingerprint | None:
    """Worker entry point. Returns None when the file vanished before it could be opened."""
    try:
        f = open(path, "rb")
    except FileNotFoundError:
        return None
    with f:
        # noinspection PyTypeChecker
        return fingerprint_fn(path.name, f)


class Processor:
    """Process pool hashing local files in parallel.

    The fingerprint function is sent to the workers by reference, so it must be
    a module-level function importable in the worker processes.
    """

    def __init__(self, concurrency: int | None = None, fingerprint_fn: FingerprintFunction = sha256_fingerprint):
        if concurrency is None:
            concurrency = multiprocessing.cpu_count()

        self._concurrency = concurrency
        self._fingerprint_fn = fingerprint_fn
        self._pool: Pool = Pool(self._concurrency)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self._pool.close()
        self._pool.join()

    @property
    def concurrency(self):
        return self._concurrency

    @property
    def fingerprint_fn(self) -> FingerprintFunction:
        return self._fingerprint_fn

    def fingerprint(self, paths: list[pathlib.Path]) -> list[FileFingerprint | None]:
        """Fingerprint files in parallel; results are in the order of paths.

        The first error raised by any worker is re-raised here.
        """
        if not paths:
            return []

        logger.info(f"Starting fingerprinting of {len(paths)} files in {paths[0].parent}")
        results = self._pool.starmap(fingerprint_path, [(self._fingerprint_fn, path) for path in paths])
        logger.info(f"Completed fingerprinting of {len(paths)} files in {paths[0].parent}")
        return results
