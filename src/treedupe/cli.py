import argparse
import logging
import os
import sys
import textwrap
from functools import wraps
from pathlib import Path

from . import Processor, ScanCancelled, ScanSettings, Scanner, WalkError
from .commands.report import ReportOptions, do_report
from .scanner import LOG_FORMAT


def needs_scanner(func):
    """Decorator for commands that scan.

    The decorated function receives (scanner, output, args). The wrapper takes
    (settings, output, args), creates a Processor when the configured
    concurrency calls for one, and builds the Scanner.
    """
    @wraps(func)
    def wrapper(settings, output, args):
        concurrency = args.concurrency if args.concurrency is not None else settings.concurrency
        if concurrency > 1:
            with Processor(concurrency) as processor:
                return func(Scanner(settings, processor), output, args)
        return func(Scanner(settings), output, args)
    return wrapper


def treedupe_main():
    parser = argparse.ArgumentParser(
        prog='treedupe',
        description='Fingerprint directory trees, including the contents of zip archives, and report which '
                    'directories are identical or highly similar.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              treedupe scan ~/backups
              treedupe scan --identical-only --limit 20 /mnt/archive
              treedupe inspect ~/backups/photos.zip
            ''').strip()
    )
    parser.add_argument(
        '--config',
        metavar='PATH',
        help='Path to a TOML settings file. If not provided, uses the TREEDUPE_CONFIG environment variable or '
             'treedupe.toml in the current directory, if present.')
    parser.add_argument(
        '--log-file',
        metavar='PATH',
        help='Path to log file for operation logging. If not provided, uses logging.path from the settings or no '
             'logging.')
    parser.add_argument(
        '--log-level',
        metavar='LEVEL',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Defaults to INFO when --log-file is provided.')
    parser.add_argument(
        '--concurrency',
        type=int,
        metavar='N',
        help='Number of worker processes used to hash files. 1 hashes in-process. Defaults to '
             'processor.concurrency from the settings, or the number of CPUs.')
    subparsers = parser.add_subparsers(
        dest='command',
        required=True,
        title='Commands',
        description='Available commands',
        help='Use "treedupe COMMAND --help" for command-specific help'
    )

    parser_scan = subparsers.add_parser(
        'scan',
        help='Report similar and identical directories below a path',
        description='Walks each path (a directory or a zip archive), fingerprints every file and compares every '
                    'pair of directories and archives found. Pairs are listed least similar first. Directories '
                    'inside an identical pair, and pairs they would make redundant, are not listed.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              treedupe scan /home/user/documents
              treedupe scan --bytes --tree /path/to/dir /path/to/archive.zip

            Each path is scanned and reported on its own.
            ''').strip())
    parser_scan.add_argument(
        'paths',
        nargs='+',
        metavar='PATH',
        help='Directories or zip archives to scan')
    parser_scan.add_argument(
        '--identical-only',
        action='store_true',
        help='Only list pairs of identical directories')
    parser_scan.add_argument(
        '--include-disjoint',
        action='store_true',
        help='Also list pairs that share no content (default: from report.include_disjoint, or off)')
    parser_scan.add_argument(
        '--limit',
        type=int,
        metavar='N',
        help='List at most N pairs, keeping the most similar ones')
    parser_scan.add_argument(
        '--bytes',
        action='store_true',
        help='Show sizes in bytes instead of human-readable format (e.g., 1048576 instead of 1.00 MB)')
    parser_scan.add_argument(
        '--tree',
        action='store_true',
        help='Also print the fingerprint tree of each scanned path')
    parser_scan.set_defaults(method=_scan)

    parser_inspect = subparsers.add_parser(
        'inspect',
        help='Print the fingerprint tree of a path',
        description='Walks a directory or zip archive and prints the fingerprint of every file, grouped by '
                    'directory, without comparing anything.')
    parser_inspect.add_argument(
        'path',
        metavar='PATH',
        help='Directory or zip archive to inspect')
    parser_inspect.set_defaults(method=_inspect)

    args = parser.parse_args()

    if args.log_file:
        log_level = args.log_level if args.log_level is not None else 'INFO'
        logging.basicConfig(
            filename=args.log_file,
            level=getattr(logging, log_level),
            format=LOG_FORMAT
        )

    try:
        settings = ScanSettings.load(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: cannot load settings: {e}", file=sys.stderr)
        sys.exit(1)

    if not args.log_file:
        Scanner(settings).configure_logging_from_settings()

    try:
        args.method(settings, None, args)
    except WalkError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (ScanCancelled, KeyboardInterrupt):
        print("Cancelled", file=sys.stderr)
        sys.exit(130)


@needs_scanner
def _scan(scanner: Scanner, output, args):
    if args.include_disjoint:
        scanner.settings.set('report.include_disjoint', True)

    options = ReportOptions(
        use_bytes=args.bytes,
        identical_only=args.identical_only,
        limit=args.limit,
        show_tree=args.tree,
        identical_threshold=scanner.settings.identical_threshold
    )

    for i, path in enumerate(args.paths):
        if i > 0:
            print(file=output)
        result = scanner.scan(Path(path))
        do_report(result, options, output)


@needs_scanner
def _inspect(scanner: Scanner, output, args):
    root, index = scanner.walk(Path(os.path.abspath(args.path)))
    print(root.describe(), file=output)


if __name__ == '__main__':
    treedupe_main()
