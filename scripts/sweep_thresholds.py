"""Sweep detection thresholds over a labeled recording."""
from __future__ import annotations

import argparse
import logging
import sys

from soundmatch.audio.wav import load_wav
from soundmatch.audio.resample import to_canonical
from soundmatch.errors import DecodeError
from soundmatch.offline.sweep import best_threshold, format_sweep, sweep_thresholds, threshold_range


def main() -> None:
    parser = argparse.ArgumentParser(description="Count offline matches across a range of thresholds.")
    parser.add_argument("long_wav")
    parser.add_argument("sample_wav")
    parser.add_argument("--expected", type=int, default=None)
    parser.add_argument("--start", type=float, default=5.0)
    parser.add_argument("--stop", type=float, default=80.0)
    parser.add_argument("--step", type=float, default=5.0)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        long_audio, long_sr = load_wav(args.long_wav)
        sample, sample_sr = load_wav(args.sample_wav)
    except DecodeError as exc:
        print(exc, file=sys.stderr)
        sys.exit(1)
    long_audio = to_canonical(long_audio, long_sr)
    sample = to_canonical(sample, sample_sr)

    points = sweep_thresholds(long_audio, sample, threshold_range(args.start, args.stop, args.step), args.expected)
    print(format_sweep(points))
    best = best_threshold(points)
    if best is not None:
        print(f"\nRecommended threshold: {best:.1f}")


if __name__ == "__main__":
    main()
