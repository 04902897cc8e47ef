import itertools
import sys
import threading
import types

import numpy as np
import pytest

from soundmatch.audio.ring_buffer import HopFramer, RingBuffer
from soundmatch.audio.sources import ArrayAudioSource, FileAudioSource, MicrophoneAudioSource
from soundmatch.audio.wav import save_wav
from soundmatch.errors import DeviceError


def test_ring_buffer_wraps():
    rb = RingBuffer(16)
    rb.write(np.arange(10, dtype=np.float32))
    assert rb.read(12) is None
    rb.write(np.arange(10, 20, dtype=np.float32))
    np.testing.assert_array_equal(rb.read(8), np.arange(12, 20, dtype=np.float32))
    np.testing.assert_array_equal(rb.read(4, offset=2), np.arange(14, 18, dtype=np.float32))


def test_hop_framer_emits_aligned_frames():
    framer = HopFramer(frame_size=8, hop_length=2)
    signal = np.arange(20, dtype=np.float32)
    frames = []
    for start in range(0, len(signal), 3):
        frames.extend(framer.push(signal[start : start + 3]))
    assert len(frames) == 1 + (20 - 8) // 2
    for k, frame in enumerate(frames):
        np.testing.assert_array_equal(frame, signal[2 * k : 2 * k + 8])


def test_array_source_resamples_and_hops():
    source = ArrayAudioSource(np.zeros(8000, dtype=np.float32), sample_rate=8000)
    assert source.total_samples == 16000
    frames = list(source.chunks(1024))
    assert len(frames) == 1 + (16000 - 1024) // 256
    assert all(len(f) == 1024 for f in frames)


def test_file_source_knows_length_after_load(tmp_path):
    path = save_wav(tmp_path / "in.wav", np.zeros(4410, dtype=np.float32), 44100)
    source = FileAudioSource(path)
    assert source.total_samples is None
    frames = list(source.chunks(1024))
    assert source.total_samples == 1600
    assert len(frames) == 1 + (1600 - 1024) // 256


class _FakeStream:
    def __init__(self, blocks, callback, start_error=None):
        self.blocks = blocks
        self.callback = callback
        self.start_error = start_error
        self.closed = False

    def start(self):
        if self.start_error is not None:
            raise self.start_error
        for block in self.blocks:
            self.callback(block.reshape(-1, 1), len(block), None, None)

    def stop(self):
        pass

    def close(self):
        self.closed = True


def _fake_sounddevice(blocks, streams, fail=False, fail_on_start=False):
    module = types.ModuleType("sounddevice")

    class PortAudioError(Exception):
        pass

    def InputStream(callback=None, **kwargs):
        if fail:
            raise PortAudioError("no such device")
        start_error = PortAudioError("device busy") if fail_on_start else None
        stream = _FakeStream(blocks, callback, start_error)
        streams.append(stream)
        return stream

    module.PortAudioError = PortAudioError
    module.InputStream = InputStream
    return module



def test_microphone_drops_silent_frames_and_closes_stream(monkeypatch):
    silent = [np.zeros(256, dtype=np.float32)] * 4
    t = np.arange(256 * 8) / 16000
    loud = np.split((0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32), 8)
    streams = []
    monkeypatch.setitem(sys.modules, "sounddevice", _fake_sounddevice(silent + loud, streams))

    source = MicrophoneAudioSource(poll_timeout=0.01)
    frames = source.chunks(1024)
    taken = list(itertools.islice(frames, 8))
    frames.close()

    assert len(taken) == 8
    assert source.dropped_frames == 1
    assert source.emitted_frames == 8
    assert streams[0].closed


def test_microphone_stop_ends_silent_capture(monkeypatch):
    streams = []
    monkeypatch.setitem(sys.modules, "sounddevice", _fake_sounddevice([np.zeros(2048, dtype=np.float32)], streams))
    source = MicrophoneAudioSource(poll_timeout=0.01)
    result = []
    frames = source.chunks(1024)
    worker = threading.Thread(target=lambda: result.extend(frames))
    worker.start()
    source.stop()
    worker.join(timeout=2.0)
    assert not worker.is_alive()
    assert result == []
    assert streams[0].closed


def test_microphone_device_failure(monkeypatch):
    monkeypatch.setitem(sys.modules, "sounddevice", _fake_sounddevice([], [], fail=True))
    with pytest.raises(DeviceError):
        next(MicrophoneAudioSource().chunks(1024))


def test_microphone_start_failure_is_a_device_error(monkeypatch):
    streams = []
    monkeypatch.setitem(sys.modules, "sounddevice", _fake_sounddevice([], streams, fail_on_start=True))
    with pytest.raises(DeviceError):
        next(MicrophoneAudioSource().chunks(1024))
    assert streams[0].closed


def test_stop_before_capture_does_not_leak_into_next_capture(monkeypatch):
    t = np.arange(2048) / 16000
    loud = (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)
    streams = []
    monkeypatch.setitem(sys.modules, "sounddevice", _fake_sounddevice([loud], streams))
    source = MicrophoneAudioSource(poll_timeout=0.01)

    source.stop()
    frames = source.chunks(1024)
    first = next(frames)
    frames.close()

    assert len(first) == 1024
    assert streams[0].closed
