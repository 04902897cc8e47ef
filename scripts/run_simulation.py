"""Play a WAV file (or a synthesized scenario) through the streaming matcher."""
from __future__ import annotations

import argparse
import logging
import sys

from soundmatch.audio.sources import FileAudioSource
from soundmatch.audio.wav import load_wav
from soundmatch.errors import DecodeError
from soundmatch.matching.alerts import ClipAlertHandler, LoggingAlertHandler
from soundmatch.matching.fingerprint import build_fingerprint, load_fingerprint
from soundmatch.matching.session import SessionRunner
from soundmatch.matching.streaming import MatchSettings
from soundmatch.simulation.detection_report import event_times, score_detections
from soundmatch.simulation.event_player import EventPlayer, Scenario, evenly_spaced
from soundmatch.utils.constants import MATCH


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the streaming matcher over recorded or synthetic audio.")
    parser.add_argument("sample_wav", help="Reference sample")
    parser.add_argument("input_wav", nargs="?", help="Recording to play; omit to synthesize a scenario")
    parser.add_argument("--threshold", type=float, default=MATCH.similarity_threshold)
    parser.add_argument("--interval-ms", type=float, default=MATCH.min_alert_interval_ms)
    parser.add_argument("--occurrences", type=int, default=5, help="Placements in the synthetic scenario")
    parser.add_argument("--noise", type=float, default=0.01, help="Noise level of the synthetic scenario")
    parser.add_argument("--clips", default=None, help="Directory for alert clips")
    parser.add_argument("--realtime", action="store_true", help="Pace frames at the recording rate")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    runner = SessionRunner(settings=MatchSettings(args.threshold, args.interval_ms))
    history = LoggingAlertHandler(runner.state)
    handler = ClipAlertHandler(args.clips, runner.state) if args.clips else history

    player = None
    if args.input_wav:
        fingerprint = load_fingerprint(args.sample_wav)
        source = FileAudioSource(args.input_wav, realtime_pacing=args.realtime)
    else:
        try:
            sample, sr = load_wav(args.sample_wav)
        except DecodeError as exc:
            print(exc, file=sys.stderr)
            sys.exit(1)
        fingerprint = build_fingerprint(sample, sr)
        spacing = len(sample) / sr + 2.0
        scenario = Scenario(
            name="synthetic",
            length_s=spacing * (args.occurrences + 1),
            noise_level=args.noise,
            placements=evenly_spaced(args.occurrences, 1.0, spacing),
        )
        player = EventPlayer(scenario, sample, sr)
        source = player.source(realtime=args.realtime)

    runner.start(source, fingerprint, alert_handler=handler, is_simulation=True)
    try:
        runner.wait()
    except DecodeError as exc:
        print(exc, file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        runner.stop()

    snapshot = runner.state.snapshot()
    print(f"Frames checked: {snapshot.total_checks}")
    print(f"Matches: {snapshot.match_count}")
    print(f"Progress: {snapshot.simulation_progress * 100:.0f}%")
    if player is not None and handler is history:
        report = score_detections(event_times(history.history), player.event_schedule(), player.duration_s)
        print(f"Detection report: {report.summary()}")


if __name__ == "__main__":
    main()
