"""
Apply a fitted model to new audio.

Each full window is vectorized, transformed, mapped back to samples,
clipped to [-1, 1] and appended to the output. Trailing samples that do
not fill a window are dropped, as during training.
"""

import logging

import numpy as np

from .audio import Recording
from .features import FFT, Vectorizer
from .models import Model
from .strategy import vectorizer_for_model
from .windows import AudioWindowSegmenter

logger = logging.getLogger(__name__)


class InferenceRunner:
    """
    Window-by-window conversion with a read-only model.

    Example:
        >>> runner = InferenceRunner(model, SpectralVectorizer())
        >>> converted = runner.run(recording)
    """

    def __init__(self, model: Model, vectorizer: Vectorizer):
        self.model = model
        self.vectorizer = vectorizer
        self.window_size = model.input_size

    def convert_window(self, window: np.ndarray) -> np.ndarray:
        """One window in, one clipped window out."""
        vector = self.vectorizer.forward(window)
        transformed = self.model.apply(vector)
        samples = self.vectorizer.inverse(transformed)
        return np.clip(samples, -1.0, 1.0)

    def run(self, recording: Recording) -> Recording:
        """Convert a recording; the sample rate is carried over unchanged."""
        windows = AudioWindowSegmenter(recording.samples, self.window_size)
        logger.info("Translating %d windows of %d samples...", len(windows), self.window_size)

        chunks = [self.convert_window(w) for w in windows]
        samples = np.concatenate(chunks) if chunks else np.zeros(0, dtype=np.float64)
        return recording.with_samples(samples)


def translate(model: Model, recording: Recording, fft: FFT | None = None) -> Recording:
    """Convert a recording with the vectorizer matching the model's kind."""
    return InferenceRunner(model, vectorizer_for_model(model, fft)).run(recording)
