"""
Conversion error metrics.

Includes:
- ErrorReport: summed squared errors of a fitted model over its training pairs
- windowed_mse: per-window mean squared error between two sample buffers
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np

from .models import Model
from .pairs import TrainingPair
from .windows import AudioWindowSegmenter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorReport:
    """Squared-error totals over a training set."""
    target_magnitude: float     # sum |target|^2
    baseline_error: float       # sum |source - target|^2 (no transform)
    transformed_error: float    # sum |M source - target|^2

    @property
    def improved(self) -> bool:
        return self.transformed_error < self.baseline_error

    def log(self):
        logger.info(
            "Total error: %g (no trans) %g (trans) %g (target mag)",
            self.baseline_error, self.transformed_error, self.target_magnitude,
        )


def compute_error_report(pairs: List[TrainingPair], model: Model) -> ErrorReport:
    """Compare untransformed, transformed and target vectors for every pair."""
    target_mag = baseline = transformed = 0.0
    for pair in pairs:
        target = np.asarray(pair.target, dtype=np.float64)
        target_mag += float(np.dot(target, target))

        diff = pair.source - target
        baseline += float(np.dot(diff, diff))

        diff = model.apply(pair.source) - target
        transformed += float(np.dot(diff, diff))

    return ErrorReport(
        target_magnitude=target_mag,
        baseline_error=baseline,
        transformed_error=transformed,
    )


def windowed_mse(output: np.ndarray, target: np.ndarray, window_size: int) -> np.ndarray:
    """
    Mean squared error of each full window.

    Windows are taken over the shorter of the two buffers.
    """
    n = min(len(output), len(target))
    out_windows = AudioWindowSegmenter(np.asarray(output)[:n], window_size)
    tgt_windows = AudioWindowSegmenter(np.asarray(target)[:n], window_size)
    return np.array([np.mean((o - t) ** 2) for o, t in zip(out_windows, tgt_windows)])
