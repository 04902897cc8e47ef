"""Scan a long WAV recording for occurrences of a reference sample."""
from __future__ import annotations

import argparse
import logging
import sys

from soundmatch import get_version
from soundmatch.errors import DecodeError
from soundmatch.offline.batch import OfflineBatchDetector, format_matches
from soundmatch.utils.constants import MATCH


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline MFCC match scan.")
    parser.add_argument("long_wav", help="Recording to scan")
    parser.add_argument("sample_wav", help="Reference sample")
    parser.add_argument("--threshold", type=float, default=MATCH.similarity_threshold)
    parser.add_argument("--expected", type=int, default=None, help="Known number of occurrences")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--version", action="version", version=get_version())
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    detector = OfflineBatchDetector(threshold=args.threshold)

    def progress(value: float) -> None:
        print(f"\rScanning... {value * 100:5.1f}%", end="", flush=True)

    try:
        matches = detector.detect_files(args.long_wav, args.sample_wav, on_progress=progress)
    except DecodeError as exc:
        print(f"\n{exc}", file=sys.stderr)
        sys.exit(1)
    print()
    print(format_matches(matches, args.expected))


if __name__ == "__main__":
    main()
