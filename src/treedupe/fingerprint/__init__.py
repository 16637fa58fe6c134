from .model import ROOT_PATH, FileFingerprint, DirectoryFingerprint, FingerprintIndex
from .iterator import iterate_by_digest
from .hasher import sha256_fingerprint, FingerprintFunction
