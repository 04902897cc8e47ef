import numpy as np
import pytest

from soundmatch.matching.alerts import LoggingAlertHandler
from soundmatch.matching.fingerprint import build_fingerprint
from soundmatch.matching.state import AnalysisState
from soundmatch.matching.streaming import MatchSettings, StreamingMatcher
from soundmatch.offline.batch import detect_matches
from soundmatch.simulation.detection_report import event_times, match_times, score_detections
from soundmatch.simulation.event_player import EventPlayer, SamplePlacement, Scenario, evenly_spaced
from soundmatch.utils.constants import ANALYSIS


def test_scenario_places_sample_at_schedule(noise_sample):
    scenario = Scenario("two", length_s=3.0, noise_level=0.0, placements=[SamplePlacement(0.5), SamplePlacement(2.0, 0.5)])
    player = EventPlayer(scenario, noise_sample)
    assert len(player.timeline) == 48000
    np.testing.assert_array_equal(player.timeline[8000:12000], noise_sample)
    np.testing.assert_allclose(player.timeline[32000:36000], 0.5 * noise_sample)
    assert player.event_schedule() == [0.5, 2.0]
    assert player.duration_s == 3.0


def test_placements_past_the_end_are_ignored(noise_sample):
    scenario = Scenario("late", length_s=1.0, noise_level=0.0, placements=[SamplePlacement(0.9), SamplePlacement(5.0)])
    player = EventPlayer(scenario, noise_sample)
    assert player.event_schedule() == [0.9]
    assert len(player.timeline) == 16000


def test_noise_is_reproducible(noise_sample):
    scenario = Scenario("noisy", length_s=1.0, noise_level=0.01, seed=3)
    np.testing.assert_array_equal(EventPlayer(scenario, noise_sample).timeline, EventPlayer(scenario, noise_sample).timeline)


def test_score_detections():
    report = score_detections([1.1, 4.0, 9.5, 9.6], [1.0, 4.2, 7.0], duration_s=60.0, tolerance_s=0.5)
    assert (report.hits, report.misses, report.false_positives) == (2, 1, 2)
    assert report.recall == pytest.approx(2 / 3)
    assert report.false_positives_per_minute == pytest.approx(2.0)
    assert report.mean_latency == pytest.approx(0.05)
    assert "hits=2" in report.summary()


def test_offline_scan_of_synthetic_scenario_has_perfect_report(noise_sample):
    scenario = Scenario("quiet", length_s=9.0, noise_level=0.0, placements=evenly_spaced(3, 1.024, 3.072))
    player = EventPlayer(scenario, noise_sample)
    matches = detect_matches(player.timeline, noise_sample, threshold=1.0)
    report = score_detections(match_times(matches), player.event_schedule(), player.duration_s)
    assert (report.hits, report.misses, report.false_positives) == (3, 0, 0)


def test_streaming_events_use_stream_time(noise_sample):
    scenario = Scenario("quiet", length_s=4.0, noise_level=0.0, placements=[SamplePlacement(1.024)])
    player = EventPlayer(scenario, noise_sample)
    state = AnalysisState()
    history = LoggingAlertHandler(state)
    settings = MatchSettings(similarity_threshold=1.0, min_alert_interval_ms=0)
    fingerprint = build_fingerprint(noise_sample)
    # keep the raw distance for the whole run
    matcher = StreamingMatcher(state, settings, alert_handler=history, cms_window=1000, cms_warmup=1000)
    matcher.run(player.source(), fingerprint, is_simulation=True)
    expected_ms = (16384 + fingerprint.best_frame_index * ANALYSIS.hop_length) * 1000.0 / ANALYSIS.sample_rate
    assert event_times(history.history) == [pytest.approx(expected_ms / 1000.0)]
