"""
Command line decoder for binary flight logs.

Usage:
    binlog-decode LOGFILE [--csv-dir DIR] [--chunk-size N] [--verbose]
"""

import argparse
import logging
import signal
import sys
from pathlib import Path

from binlog.config import DEFAULT_CHUNK_SIZE, ParserConfig
from binlog.services.bin_parser import BinLogParser, LoggingCallback
from binlog.services.store import LogStore


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Decode a binary autopilot flight log")
    parser.add_argument("logfile", help="Path to the binary log file")
    parser.add_argument(
        "--csv-dir", "-o",
        default=None,
        help="Export each record type to DIR/<type>.csv"
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help=f"Bytes read per chunk (default: {DEFAULT_CHUNK_SIZE})"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log progress and every corrupt record"
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    logfile = Path(args.logfile)
    if not logfile.is_file():
        print(f"Error: log file not found: {logfile}", file=sys.stderr)
        return 2

    store = LogStore()
    callback = LoggingCallback()
    parser = BinLogParser(store, callback, ParserConfig(chunk_size=args.chunk_size))

    # Ctrl-C stops after the current record and keeps what was decoded
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: parser.request_stop())
    try:
        with open(logfile, "rb") as stream:
            status = parser.parse(stream)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print(f"Decoded {logfile.name}")
    print("=" * 40)
    print(status.summary())
    if parser.stopped:
        print("Stopped early: result is partial")
    print()
    for name in store.type_names():
        print(f"  {name:<6} {store.row_count(name):>8} rows")

    if callback.errors:
        print(f"\nError: {callback.errors[-1]}", file=sys.stderr)
        return 1

    if args.csv_dir:
        written = store.export_csv(Path(args.csv_dir))
        print(f"\nWrote {len(written)} CSV files to {args.csv_dir}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
