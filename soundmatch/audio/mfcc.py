"""Per-frame MFCC extraction utilities."""
from __future__ import annotations

import functools

import numpy as np

from soundmatch.utils.constants import ANALYSIS
from soundmatch.utils.helpers import as_float_frame


def energy(frame: np.ndarray) -> float:
    """Sum of squared samples, a relative loudness proxy."""
    data = np.asarray(frame, dtype=np.float64)
    return float(np.dot(data, data))


def hanning_window(frame: np.ndarray) -> np.ndarray:
    """Return a windowed copy of ``frame``."""
    return frame * np.hanning(len(frame))


def magnitude_spectrum(frame: np.ndarray, n_fft: int) -> np.ndarray:
    return np.abs(np.fft.rfft(frame, n=n_fft))


def mel_filterbank(sample_rate: int, n_fft: int, n_mels: int, fmin: float, fmax: float) -> np.ndarray:
    import librosa

    return librosa.filters.mel(
        sr=sample_rate,
        n_fft=n_fft,
        n_mels=n_mels,
        fmin=fmin,
        fmax=fmax,
        htk=True,
        norm=None,
    ).astype(np.float64)


def dct_basis(n_coefficients: int, n_filters: int) -> np.ndarray:
    """Unnormalized DCT-II basis, shape ``(n_coefficients, n_filters)``."""
    i = np.arange(n_coefficients)[:, np.newaxis]
    j = np.arange(n_filters)[np.newaxis, :]
    return np.cos(np.pi * i / n_filters * (j + 0.5))


class FeatureExtractor:
    """Computes 12-coefficient MFCC vectors (C1..C12) for single frames.

    The filter bank and cosine basis are built once and never written
    afterwards, so one instance can serve several threads.
    """

    def __init__(
        self,
        sample_rate: int = ANALYSIS.sample_rate,
        frame_size: int = ANALYSIS.frame_size,
        n_mels: int = ANALYSIS.n_mels,
        n_cepstral: int = ANALYSIS.n_cepstral,
        log_floor: float = ANALYSIS.log_floor,
        drop_c0: bool = True,
    ) -> None:
        self.sample_rate = int(sample_rate)
        self.frame_size = int(frame_size)
        self.n_mels = n_mels
        self.n_cepstral = n_cepstral
        self.log_floor = log_floor
        self.drop_c0 = drop_c0
        self._mel_fb = mel_filterbank(self.sample_rate, self.frame_size, n_mels, 0.0, self.sample_rate / 2.0)
        self._dct = dct_basis(n_cepstral, n_mels)
        self._mel_fb.setflags(write=False)
        self._dct.setflags(write=False)

    @property
    def n_features(self) -> int:
        return self.n_cepstral - 1 if self.drop_c0 else self.n_cepstral

    def cepstrum(self, frame: np.ndarray) -> np.ndarray:
        """All ``n_cepstral`` coefficients, C0 included."""
        data = as_float_frame(frame, self.frame_size)
        spectrum = magnitude_spectrum(hanning_window(data), self.frame_size)
        fbank = self._mel_fb @ spectrum
        log_fbank = np.log(np.maximum(fbank, self.log_floor))
        return self._dct @ log_fbank

    def extract_mfcc(self, frame: np.ndarray) -> np.ndarray:
        coefficients = self.cepstrum(frame)
        if self.drop_c0:
            # C0 tracks absolute loudness
            coefficients = coefficients[1:]
        coefficients = np.ascontiguousarray(coefficients)
        coefficients.setflags(write=False)
        return coefficients

    def extract_sequence(self, signal: np.ndarray, hop_length: int) -> np.ndarray:
        """MFCC vectors for every full hop-stepped frame, shape ``(n_frames, n_features)``."""
        data = np.asarray(signal, dtype=np.float64)
        vectors = [
            self.extract_mfcc(data[start : start + self.frame_size])
            for start in range(0, len(data) - self.frame_size + 1, hop_length)
        ]
        if not vectors:
            return np.zeros((0, self.n_features), dtype=np.float64)
        return np.vstack(vectors)


@functools.lru_cache(maxsize=None)
def default_extractor(sample_rate: int = ANALYSIS.sample_rate, frame_size: int = ANALYSIS.frame_size) -> FeatureExtractor:
    """Shared extractor for the canonical analysis settings."""
    return FeatureExtractor(sample_rate=sample_rate, frame_size=frame_size)


def extract_mfcc(frame: np.ndarray, sample_rate: int = ANALYSIS.sample_rate) -> np.ndarray:
    return default_extractor(int(sample_rate), len(frame) or ANALYSIS.frame_size).extract_mfcc(frame)
