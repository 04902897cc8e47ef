"""Sliding-window cepstral mean subtraction."""
from __future__ import annotations

from collections import deque
from typing import Deque, Optional

import numpy as np

from soundmatch.utils.constants import ANALYSIS


class SlidingCmsWindow:
    """Bounded FIFO of recent MFCC vectors with a running mean.

    ``normalize`` returns ``None`` until ``warmup`` vectors have been seen;
    afterwards it returns the vector minus the mean of the window.
    """

    def __init__(self, capacity: int = ANALYSIS.cms_window, warmup: int = ANALYSIS.cms_warmup) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if not 0 < warmup <= capacity:
            raise ValueError("warmup must be in (0, capacity]")
        self.capacity = capacity
        self.warmup = warmup
        self._vectors: Deque[np.ndarray] = deque()
        self._sum: Optional[np.ndarray] = None
        self._pushes = 0

    def __len__(self) -> int:
        return len(self._vectors)

    @property
    def warmed_up(self) -> bool:
        return len(self._vectors) >= self.warmup

    def push(self, vector: np.ndarray) -> None:
        vector = np.array(vector, dtype=np.float64, copy=True)
        if self._sum is not None and self._sum.shape != vector.shape:
            self.clear()
        if self._sum is None:
            self._sum = np.zeros_like(vector)
        self._vectors.append(vector)
        self._sum += vector
        if len(self._vectors) > self.capacity:
            self._sum -= self._vectors.popleft()
        self._pushes += 1
        if self._pushes % self.capacity == 0:
            # exact resum once per window turnover
            self._sum = np.sum(self._vectors, axis=0)

    def mean(self) -> Optional[np.ndarray]:
        if not self._vectors:
            return None
        return self._sum / len(self._vectors)

    def normalize(self, vector: np.ndarray) -> Optional[np.ndarray]:
        if not self.warmed_up:
            return None
        return np.asarray(vector, dtype=np.float64) - self.mean()

    def clear(self) -> None:
        self._vectors.clear()
        self._sum = None
        self._pushes = 0
