"""
Training pair construction.

Corresponding windows of a source and a target recording are vectorized
and kept as a pair only when both vectors carry enough energy.
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np

from .audio import Recording
from .errors import InsufficientDataError
from .features import Vectorizer
from .windows import AudioWindowSegmenter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainingPair:
    """Source feature vector and the target vector it should map to."""
    source: np.ndarray
    target: np.ndarray


def energy(vector: np.ndarray) -> float:
    """Self dot-product of a feature vector."""
    return float(np.dot(vector, vector))


def passes_energy_gate(source: np.ndarray, target: np.ndarray, min_amplitude: float) -> bool:
    """True when neither vector falls below the gate (equality is kept)."""
    return not (energy(source) < min_amplitude or energy(target) < min_amplitude)


def build_training_pairs(
    source: Recording,
    target: Recording,
    vectorizer: Vectorizer,
    window_size: int,
    min_amplitude: float = 1e-2,
) -> List[TrainingPair]:
    """
    Pair up windows of two equal-length recordings.

    Args:
        source: Recording of the speaker to convert from
        target: Recording of the speaker to convert to
        vectorizer: Feature vectorizer applied to both sides
        window_size: Samples per window
        min_amplitude: Energy gate; pairs with either side below it are dropped

    Returns:
        Pairs in window order

    Raises:
        InsufficientDataError: if the recordings differ in length
    """
    if len(source) != len(target):
        raise InsufficientDataError(
            f"source and target must have matching sizes "
            f"(source {len(source)} samples, target {len(target)})"
        )

    pairs = []
    windows = zip(
        AudioWindowSegmenter(source.samples, window_size),
        AudioWindowSegmenter(target.samples, window_size),
    )
    total = 0
    for src_window, tgt_window in windows:
        total += 1
        src_vec = vectorizer.forward(src_window)
        tgt_vec = vectorizer.forward(tgt_window)
        if not passes_energy_gate(src_vec, tgt_vec, min_amplitude):
            continue
        pairs.append(TrainingPair(source=src_vec, target=tgt_vec))

    logger.info("Kept %d of %d windows above energy %g", len(pairs), total, min_amplitude)
    return pairs


def stack_pairs(pairs: List[TrainingPair]) -> tuple[np.ndarray, np.ndarray]:
    """Source and target vectors stacked as rows: (A, B), each R x W."""
    if not pairs:
        raise InsufficientDataError("no training pairs")
    sources = np.stack([p.source for p in pairs]).astype(np.float64)
    targets = np.stack([p.target for p in pairs]).astype(np.float64)
    return sources, targets
