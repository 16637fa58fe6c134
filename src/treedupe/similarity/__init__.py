from .path import is_strict_descendant, is_descendant_or_equal, are_related
from .measure import Similarity, compare, hamming_path_similarity, IDENTICAL_THRESHOLD
from .detector import PairSim, RedundancyDetector, detect
