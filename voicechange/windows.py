"""Fixed-size window segmentation of sample streams."""

from typing import Iterator

import numpy as np


class AudioWindowSegmenter:
    """
    Non-overlapping fixed-size windows over a sample buffer.

    Windows start at offsets 0, W, 2W, ...; trailing samples that do not
    fill a whole window are dropped. Iterating again restarts from the
    first window.

    Example:
        for window in AudioWindowSegmenter(samples, 512):
            process(window)
    """

    def __init__(self, samples: np.ndarray, window_size: int):
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")
        self.samples = np.asarray(samples, dtype=np.float64).reshape(-1)
        self.window_size = window_size

    def __len__(self) -> int:
        return len(self.samples) // self.window_size

    def __iter__(self) -> Iterator[np.ndarray]:
        w = self.window_size
        for start in range(0, len(self) * w, w):
            yield self.samples[start:start + w]

