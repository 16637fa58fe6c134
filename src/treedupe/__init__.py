from .errors import WalkError, RootWalkError, SubtreeSkipped, InvariantViolation, ScanCancelled
from .fingerprint import ROOT_PATH, FileFingerprint, DirectoryFingerprint, FingerprintIndex, iterate_by_digest, \
    sha256_fingerprint
from .similarity import Similarity, PairSim, compare, detect, RedundancyDetector
from .utils.processor import Processor
from .utils.source import Source, DirectorySource, ZipSource
from .utils.walker import Walker, walk
from .settings import ScanSettings
from .scanner import Scanner, ScanResult
