"""Circular buffer and hop-stepped framing for streaming audio."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

import numpy as np


@dataclass
class RingBuffer:
    size: int
    dtype: type = np.float32
    buffer: np.ndarray = field(init=False)
    write_pos: int = field(init=False, default=0)
    count: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self.buffer = np.zeros(self.size, dtype=self.dtype)

    def write(self, data: np.ndarray) -> None:
        data = np.asarray(data, dtype=self.dtype).reshape(-1)
        n = len(data)
        if n >= self.size:
            self.buffer[:] = data[-self.size :]
            self.write_pos = 0
            self.count = self.size
            return
        end = self.write_pos + n
        if end <= self.size:
            self.buffer[self.write_pos:end] = data
        else:
            first = self.size - self.write_pos
            self.buffer[self.write_pos:] = data[:first]
            self.buffer[: end % self.size] = data[first:]
        self.write_pos = end % self.size
        self.count = min(self.count + n, self.size)

    def read(self, length: int, offset: int = 0) -> Optional[np.ndarray]:
        """Return ``length`` samples ending ``offset`` samples before the newest one."""
        if self.count < length + offset:
            return None
        start = (self.write_pos - offset - length) % self.size
        if start + length <= self.size:
            return self.buffer[start : start + length].copy()
        first = self.size - start
        return np.concatenate((self.buffer[start:], self.buffer[: length - first]))

    def clear(self) -> None:
        self.buffer.fill(0)
        self.write_pos = 0
        self.count = 0


class HopFramer:
    """Turns arbitrary-sized blocks into ``frame_size`` frames spaced ``hop_length`` apart."""

    def __init__(self, frame_size: int, hop_length: int) -> None:
        if hop_length <= 0 or hop_length > frame_size:
            raise ValueError("hop_length must be in (0, frame_size]")
        self.frame_size = frame_size
        self.hop_length = hop_length
        self._ring = RingBuffer(size=frame_size + hop_length)
        self._total = 0
        self._next_end = frame_size

    def push(self, block: np.ndarray) -> Iterator[np.ndarray]:
        """Feed ``block`` and yield every frame that became complete."""
        block = np.asarray(block, dtype=np.float32).reshape(-1)
        # pieces no longer than one hop keep every pending frame inside the ring
        for start in range(0, len(block), self.hop_length):
            piece = block[start : start + self.hop_length]
            self._ring.write(piece)
            self._total += len(piece)
            while self._total >= self._next_end:
                yield self._ring.read(self.frame_size, offset=self._total - self._next_end)
                self._next_end += self.hop_length

    def reset(self) -> None:
        self._ring.clear()
        self._total = 0
        self._next_end = self.frame_size
