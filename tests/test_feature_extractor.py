import numpy as np
import pytest

from soundmatch.audio.mfcc import FeatureExtractor, default_extractor, energy, extract_mfcc, mel_filterbank
from soundmatch.utils.constants import ANALYSIS


def test_mfcc_shape_and_read_only(tone_frame):
    mfcc = default_extractor().extract_mfcc(tone_frame)
    assert mfcc.shape == (ANALYSIS.n_cepstral - 1,)
    assert not mfcc.flags.writeable
    assert np.all(np.isfinite(mfcc))


def test_mfcc_leaves_input_untouched(tone_frame):
    original = tone_frame.copy()
    default_extractor().extract_mfcc(tone_frame)
    np.testing.assert_array_equal(tone_frame, original)


def test_mfcc_is_deterministic(tone_frame):
    extractor = FeatureExtractor()
    np.testing.assert_array_equal(extractor.extract_mfcc(tone_frame), extractor.extract_mfcc(tone_frame))


def test_mfcc_ignores_constant_gain(noise_sample):
    frame = noise_sample[: ANALYSIS.frame_size]
    extractor = default_extractor()
    np.testing.assert_allclose(
        extractor.extract_mfcc(frame), extractor.extract_mfcc(frame * 0.25), atol=1e-6
    )


def test_short_frame_is_zero_padded(tone_frame):
    extractor = default_extractor()
    short = tone_frame[:600]
    padded = np.concatenate([short, np.zeros(ANALYSIS.frame_size - 600, dtype=np.float32)])
    np.testing.assert_allclose(extractor.extract_mfcc(short), extractor.extract_mfcc(padded))


def test_keep_c0_option(tone_frame):
    extractor = FeatureExtractor(drop_c0=False)
    assert extractor.n_features == ANALYSIS.n_cepstral
    full = extractor.extract_mfcc(tone_frame)
    np.testing.assert_allclose(full[1:], default_extractor().extract_mfcc(tone_frame))


def test_module_level_helper_matches_extractor(tone_frame):
    np.testing.assert_array_equal(extract_mfcc(tone_frame), default_extractor().extract_mfcc(tone_frame))


def test_energy_is_sum_of_squares():
    assert energy(np.array([1.0, -2.0, 0.5], dtype=np.float32)) == pytest.approx(5.25)
    assert energy(np.zeros(16, dtype=np.float32)) == 0.0


def test_sequence_extraction_frame_count(noise_sample):
    sequence = default_extractor().extract_sequence(noise_sample, ANALYSIS.hop_length)
    expected = 1 + (len(noise_sample) - ANALYSIS.frame_size) // ANALYSIS.hop_length
    assert sequence.shape == (expected, ANALYSIS.n_cepstral - 1)


def test_every_mel_band_covers_a_bin():
    bank = mel_filterbank(ANALYSIS.sample_rate, ANALYSIS.frame_size, ANALYSIS.n_mels, 0.0, ANALYSIS.sample_rate / 2)
    assert bank.shape == (ANALYSIS.n_mels, ANALYSIS.frame_size // 2 + 1)
    assert np.all(bank.max(axis=1) > 0)
