from pathlib import Path

import pytest

from soundmatch.audio.resample import to_canonical
from soundmatch.audio.wav import load_wav
from soundmatch.offline.batch import detect_matches

ROOT = Path(__file__).resolve().parent.parent
SAMPLE = ROOT / "sample.wav"
LONG = ROOT / "long-39.wav"
EXPECTED = 39


@pytest.fixture(scope="module")
def audio_pair():
    if not SAMPLE.exists() or not LONG.exists():
        pytest.skip("sample.wav / long-39.wav not found")
    sample, sample_sr = load_wav(SAMPLE)
    long_audio, long_sr = load_wav(LONG)
    return to_canonical(long_audio, long_sr), to_canonical(sample, sample_sr)


def test_finds_expected_occurrences(audio_pair):
    long_audio, sample = audio_pair
    assert len(detect_matches(long_audio, sample, threshold=35.0)) == EXPECTED


def test_results_ordered_and_within_duration(audio_pair):
    long_audio, sample = audio_pair
    duration = len(long_audio) / 16000.0
    matches = detect_matches(long_audio, sample, threshold=35.0)
    assert all(a.frame_index < b.frame_index for a, b in zip(matches, matches[1:]))
    assert all(0.0 <= m.time_seconds <= duration for m in matches)


def test_relaxed_threshold_never_finds_fewer(audio_pair):
    long_audio, sample = audio_pair
    strict = len(detect_matches(long_audio, sample, threshold=30.0))
    loose = len(detect_matches(long_audio, sample, threshold=40.0))
    assert loose >= strict
