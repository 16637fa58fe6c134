"""Plain-text rendering of scan results."""

import sys
from dataclasses import dataclass
from typing import TextIO

from ..scanner import ScanResult
from ..similarity.detector import PairSim


def format_size(size_bytes: int) -> str:
    """Format byte size in human-readable format (e.g. "1.50 MB")."""
    size: float = float(size_bytes)
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024.0:
            if unit == 'B':
                return f"{int(size)} {unit}"
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PB"


@dataclass
class ReportOptions:
    """Options for the scan report.

    Attributes:
        use_bytes: Show sizes in bytes instead of human-readable units
        identical_only: Only list pairs whose similarity counts as identical
        limit: Show at most this many pairs, keeping the most similar ones. None means all.
        show_tree: Also print the fingerprint tree of the scan root
        identical_threshold: Threshold used to mark pairs as identical
    """
    use_bytes: bool = False
    identical_only: bool = False
    limit: int | None = None
    show_tree: bool = False
    identical_threshold: float = 0.99


def format_pair(pair: PairSim, options: ReportOptions) -> str:
    similarity = pair.similarity
    size = str if options.use_bytes else format_size
    marker = ' (identical)' if similarity.is_identical(options.identical_threshold) else ''
    return (f"Path1: {pair.path_a}\n"
            f"Path2: {pair.path_b}\n"
            f"Similarity: {similarity}{marker} shared {size(similarity.bytes_same)}, "
            f"differing {size(similarity.bytes_diff)}")


def select_pairs(pairs: list[PairSim], options: ReportOptions) -> list[PairSim]:
    """Apply the filters of options, keeping report order (least similar first)."""
    if options.identical_only:
        pairs = [p for p in pairs if p.similarity.is_identical(options.identical_threshold)]
    if options.limit is not None:
        pairs = pairs[len(pairs) - options.limit:] if options.limit < len(pairs) else pairs
    return pairs


def do_report(result: ScanResult, options: ReportOptions | None = None, output: TextIO | None = None) -> None:
    if options is None:
        options = ReportOptions()
    if output is None:
        output = sys.stdout

    size = str if options.use_bytes else format_size
    print(f"Scanned: {result.path}", file=output)
    print(f"Directories: {len(result.index)}, files: {result.root.file_count}, "
          f"total size: {size(result.root.total_size)}", file=output)

    if options.show_tree:
        print(file=output)
        print(result.root.describe(), file=output)

    pairs = select_pairs(result.pairs, options)
    print(file=output)
    if not pairs:
        print("No similar directories found.", file=output)
        return

    print(f"Similarities found ({len(pairs)} of {len(result.pairs)}):", file=output)
    for pair in pairs:
        print(file=output)
        print(format_pair(pair, options), file=output)
