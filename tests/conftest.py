import numpy as np
import pytest

from soundmatch.utils.constants import ANALYSIS


@pytest.fixture
def noise_sample():
    """A quarter second of reproducible broadband noise."""
    rng = np.random.default_rng(7)
    return (0.1 * rng.standard_normal(4000)).astype(np.float32)


@pytest.fixture
def tone_frame():
    t = np.arange(ANALYSIS.frame_size) / ANALYSIS.sample_rate
    return (0.5 * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32)
