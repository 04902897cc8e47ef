"""Listen on a capture device and alert whenever the reference sample is heard."""
from __future__ import annotations

import argparse
import logging
import sys
import time

from soundmatch.audio.sources import MicrophoneAudioSource
from soundmatch.errors import DeviceError
from soundmatch.matching.alerts import ClipAlertHandler, LoggingAlertHandler
from soundmatch.matching.fingerprint import load_fingerprint
from soundmatch.matching.session import SessionRunner
from soundmatch.matching.streaming import MatchSettings
from soundmatch.utils.constants import MATCH


def main() -> None:
    parser = argparse.ArgumentParser(description="Run live MFCC matching on microphone input.")
    parser.add_argument("sample_wav", help="Reference sample")
    parser.add_argument("--device", default=None, help="sounddevice input device (index or name)")
    parser.add_argument("--threshold", type=float, default=MATCH.similarity_threshold)
    parser.add_argument("--interval-ms", type=float, default=MATCH.min_alert_interval_ms)
    parser.add_argument("--clips", default=None, help="Directory for alert clips")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    device = int(args.device) if args.device is not None and args.device.isdigit() else args.device
    runner = SessionRunner(settings=MatchSettings(args.threshold, args.interval_ms))
    handler = ClipAlertHandler(args.clips, runner.state) if args.clips else LoggingAlertHandler(runner.state)
    fingerprint = load_fingerprint(args.sample_wav)

    print("Listening... Ctrl+C to stop")
    runner.start(MicrophoneAudioSource(device=device), fingerprint, alert_handler=handler)
    try:
        while not runner.wait(timeout=1.0):
            snapshot = runner.state.snapshot()
            print(
                f"\rsim={snapshot.similarity:5.1f}% dist={snapshot.distance:8.2f} "
                f"checks={snapshot.total_checks} matches={snapshot.match_count}",
                end="",
                flush=True,
            )
    except DeviceError as exc:
        print(f"\n{exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        started = time.monotonic()
        runner.stop()
        print(f"\nStopped in {time.monotonic() - started:.2f}s")


if __name__ == "__main__":
    main()
