import numpy as np
import pytest

from soundmatch.audio.resample import resample, to_canonical


def test_round_trip_length_and_finite():
    x = np.sin(np.linspace(0, 40 * np.pi, 16001)).astype(np.float32)
    down = resample(x, 16000, 8000)
    back = resample(down, 8000, 16000)
    assert abs(len(down) - len(x) / 2) <= 1
    assert abs(len(back) - len(x)) <= 1
    assert np.all(np.isfinite(back))


def test_identity_and_empty():
    x = np.arange(10, dtype=np.float32)
    np.testing.assert_array_equal(resample(x, 16000, 16000), x)
    assert resample(np.zeros(0, dtype=np.float32), 44100, 16000).size == 0


def test_linear_interpolation_values():
    x = np.array([0.0, 1.0, 2.0, 3.0], dtype=np.float32)
    np.testing.assert_allclose(resample(x, 1, 2), [0.0, 0.5, 1.0, 1.5, 2.0, 2.5, 3.0, 3.0])


def test_non_positive_rate_rejected():
    with pytest.raises(ValueError):
        resample(np.zeros(4, dtype=np.float32), 0, 16000)


def test_to_canonical_from_48k():
    x = np.zeros(4800, dtype=np.float32)
    assert len(to_canonical(x, 48000)) == 1600
