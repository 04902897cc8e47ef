"""Audio sources that feed fixed-length frames to the matcher.

Every source implements the same pull contract: ``chunks(frame_size)``
returns a generator of float32 frames at the canonical analysis rate and
``total_samples`` reports the stream length when it is known. Closing the
generator (or simply dropping it) releases whatever handle the source holds.
"""
from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generator, Iterator, Optional, Protocol, runtime_checkable

import numpy as np

from soundmatch.audio.resample import to_canonical
from soundmatch.audio.ring_buffer import HopFramer
from soundmatch.audio.wav import load_wav
from soundmatch.errors import DeviceError
from soundmatch.utils.constants import ANALYSIS, CAPTURE
from soundmatch.utils.helpers import rms

logger = logging.getLogger(__name__)


@runtime_checkable
class AudioSource(Protocol):
    @property
    def total_samples(self) -> Optional[int]:
        ...

    def chunks(self, frame_size: int) -> Iterator[np.ndarray]:
        ...


def hop_frames(
    data: np.ndarray,
    frame_size: int,
    hop_length: int = ANALYSIS.hop_length,
    realtime: bool = False,
    sample_rate: int = ANALYSIS.sample_rate,
) -> Generator[np.ndarray, None, None]:
    """Yield full ``frame_size`` windows of ``data`` every ``hop_length`` samples."""
    for start in range(0, len(data) - frame_size + 1, hop_length):
        yield data[start : start + frame_size].copy()
        if realtime:
            time.sleep(hop_length / sample_rate)


@dataclass
class ArrayAudioSource:
    """Finite source over an in-memory signal."""

    samples: np.ndarray
    sample_rate: int = ANALYSIS.sample_rate
    hop_length: int = ANALYSIS.hop_length
    realtime: bool = False
    _data: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        data = np.asarray(self.samples, dtype=np.float32).reshape(-1)
        self._data = to_canonical(data, self.sample_rate)

    @property
    def total_samples(self) -> Optional[int]:
        return len(self._data)

    def chunks(self, frame_size: int) -> Iterator[np.ndarray]:
        return hop_frames(self._data, frame_size, self.hop_length, self.realtime)


class FileAudioSource:
    """Finite source backed by a WAV file, resampled to 16 kHz on load."""

    def __init__(
        self,
        path: str | Path,
        realtime_pacing: bool = False,
        hop_length: int = ANALYSIS.hop_length,
    ) -> None:
        self.path = Path(path)
        self.realtime_pacing = realtime_pacing
        self.hop_length = hop_length
        self._total_samples: Optional[int] = None

    @property
    def total_samples(self) -> Optional[int]:
        """Resampled length; known once :meth:`chunks` has loaded the file."""
        return self._total_samples

    def load(self) -> np.ndarray:
        data, sr = load_wav(self.path)
        processed = to_canonical(data, sr)
        self._total_samples = len(processed)
        logger.info("File source %s: %d Hz -> %d samples", self.path.name, sr, len(processed))
        return processed

    def chunks(self, frame_size: int) -> Iterator[np.ndarray]:
        processed = self.load()
        return hop_frames(processed, frame_size, self.hop_length, self.realtime_pacing)


class MicrophoneAudioSource:
    """Unbounded live-capture source built on ``sounddevice``.

    Frames whose RMS falls below ``silence_rms`` are dropped before feature
    extraction. The capture stream lives inside the frame generator: it is
    closed when the generator finishes, is closed by the consumer, or sees
    :meth:`stop`, which is checked at least every ``poll_timeout`` seconds
    even while no frames are being produced.
    """

    total_samples: Optional[int] = None

    def __init__(
        self,
        device: Optional[int | str] = None,
        silence_rms: float = CAPTURE.silence_rms,
        hop_length: int = ANALYSIS.hop_length,
        block_size: int = CAPTURE.block_size,
        poll_timeout: float = CAPTURE.poll_timeout_s,
    ) -> None:
        self.device = device
        self.silence_rms = silence_rms
        self.hop_length = hop_length
        self.block_size = block_size
        self.poll_timeout = poll_timeout
        self.dropped_frames = 0
        self.emitted_frames = 0
        self._stop_event = threading.Event()

    def stop(self) -> None:
        """Ask the running capture generator to finish; takes effect within ``poll_timeout``."""
        self._stop_event.set()

    def _open_stream(self, callback):
        try:
            import sounddevice as sd
        except OSError as exc:  # PortAudio library missing
            raise DeviceError(f"audio capture unavailable: {exc}") from exc
        try:
            stream = sd.InputStream(
                device=self.device,
                channels=1,
                samplerate=ANALYSIS.sample_rate,
                blocksize=self.block_size,
                dtype="float32",
                callback=callback,
            )
        except (sd.PortAudioError, ValueError) as exc:
            raise DeviceError(
                f"device does not support {ANALYSIS.sample_rate} Hz mono capture: {exc}"
            ) from exc
        try:
            stream.start()
        except sd.PortAudioError as exc:
            stream.close()
            raise DeviceError(f"could not start capture: {exc}") from exc
        return stream

    def chunks(self, frame_size: int) -> Generator[np.ndarray, None, None]:
        # each generator gets its own stop event, armed before the first frame is pulled
        self._stop_event = threading.Event()
        return self._capture(frame_size, self._stop_event)

    def _capture(self, frame_size: int, stop_event: threading.Event) -> Generator[np.ndarray, None, None]:
        blocks: "queue.Queue[np.ndarray]" = queue.Queue()

        def callback(indata, frames, time_info, status):
            if status:
                logger.warning("Capture status: %s", status)
            blocks.put(np.asarray(indata[:, 0], dtype=np.float32).copy())

        framer = HopFramer(frame_size, self.hop_length)
        stream = self._open_stream(callback)
        logger.info("Microphone capture started: %d Hz, block=%d", ANALYSIS.sample_rate, self.block_size)
        try:
            while not stop_event.is_set():
                try:
                    block = blocks.get(timeout=self.poll_timeout)
                except queue.Empty:
                    continue
                for frame in framer.push(block):
                    seen = self.emitted_frames + self.dropped_frames
                    level = rms(frame)
                    if seen < 20:
                        logger.debug(
                            "Chunk #%d: RMS=%.5f -> %s",
                            seen,
                            level,
                            "emit" if level >= self.silence_rms else "skip",
                        )
                    if level < self.silence_rms:
                        self.dropped_frames += 1
                        continue
                    self.emitted_frames += 1
                    yield frame
        finally:
            stream.stop()
            stream.close()
            logger.info(
                "Microphone capture stopped (%d emitted, %d silent)",
                self.emitted_frames,
                self.dropped_frames,
            )
