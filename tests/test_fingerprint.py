import os

import numpy as np
import pytest

from soundmatch.audio.mfcc import default_extractor
from soundmatch.audio.wav import save_wav
from soundmatch.errors import ConfigurationError, EmptyAudioError
from soundmatch.matching.fingerprint import FingerprintBuilder, build_fingerprint, load_fingerprint
from soundmatch.utils.constants import ANALYSIS


@pytest.mark.parametrize(
    "samples",
    [
        np.zeros(0, dtype=np.float32),
        np.zeros(8000, dtype=np.float32),
        np.full(ANALYSIS.frame_size - 1, 0.3, dtype=np.float32),
        np.full(4000, np.nan, dtype=np.float32),
    ],
    ids=["empty", "silent", "shorter-than-frame", "nan"],
)
def test_unusable_reference_is_rejected(samples):
    with pytest.raises(EmptyAudioError):
        build_fingerprint(samples)


def test_empty_audio_is_a_configuration_error():
    assert issubclass(EmptyAudioError, ConfigurationError)


def test_best_frame_is_the_loudest(noise_sample):
    samples = noise_sample.copy()
    hop = ANALYSIS.frame_size // 4
    # frame #6 spans samples 1536..2560; boost a region only it fully covers
    samples[1536 : 1536 + ANALYSIS.frame_size] *= 5.0
    fp = build_fingerprint(samples)
    assert fp.best_frame_index == 6
    assert fp.frame_count == 1 + (len(samples) - ANALYSIS.frame_size) // hop
    expected = default_extractor().extract_mfcc(samples[6 * hop : 6 * hop + ANALYSIS.frame_size])
    np.testing.assert_allclose(fp.raw_best, expected)
    np.testing.assert_allclose(fp.cms_best, fp.raw_best - fp.mean_mfcc)


def test_reference_at_other_rate_is_resampled(noise_sample):
    fp = build_fingerprint(noise_sample, sample_rate=8000)
    # 4000 samples at 8 kHz become 8000 at 16 kHz
    assert fp.frame_count == 1 + (8000 - ANALYSIS.frame_size) // (ANALYSIS.frame_size // 4)


def test_load_fingerprint_failures_return_none(tmp_path):
    assert load_fingerprint(None) is None
    assert load_fingerprint(tmp_path / "missing.wav") is None
    silent = save_wav(tmp_path / "silent.wav", np.zeros(4000, dtype=np.float32), 16000)
    assert load_fingerprint(silent) is None


def test_builder_caches_until_file_changes(tmp_path, noise_sample):
    path = save_wav(tmp_path / "sample.wav", noise_sample, 16000)
    builder = FingerprintBuilder()
    first = builder.load(path)
    assert first is not None
    assert builder.load(path) is first

    save_wav(path, noise_sample[::-1].copy(), 16000)
    stat = path.stat()
    os.utime(path, (stat.st_atime, stat.st_mtime + 10))
    second = builder.load(path)
    assert second is not None and second is not first
