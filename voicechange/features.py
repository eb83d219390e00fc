"""
Window feature vectorizers.

- SpectralVectorizer: real part of the DFT of a window. The imaginary
  part is dropped, so forward() loses phase and inverse() is only an
  approximate way back to samples.
- RawVectorizer: the window samples themselves.

The DFT itself is reached through the FFT protocol so tests can swap in
a deterministic stand-in.
"""

from typing import Protocol

import numpy as np


class FFT(Protocol):
    """Length-preserving discrete Fourier transform."""
    def forward(self, samples: np.ndarray) -> np.ndarray: ...
    def inverse(self, spectrum: np.ndarray) -> np.ndarray: ...


class NumpyFFT:
    """numpy.fft backend (inverse normalized by 1/N)."""

    def forward(self, samples: np.ndarray) -> np.ndarray:
        return np.fft.fft(np.asarray(samples, dtype=np.float64))

    def inverse(self, spectrum: np.ndarray) -> np.ndarray:
        return np.fft.ifft(np.asarray(spectrum, dtype=np.complex128))


class Vectorizer(Protocol):
    """Maps windows to feature vectors and back."""
    kind: str
    def forward(self, window: np.ndarray) -> np.ndarray: ...
    def inverse(self, vector: np.ndarray) -> np.ndarray: ...


class SpectralVectorizer:
    """
    Real-part spectrum features.

    Not a magnitude spectrum and not invertible: forward() keeps only the
    real component of each of the W frequency bins.
    """

    kind = "spectral"

    def __init__(self, fft: FFT | None = None):
        self.fft = fft or NumpyFFT()

    def forward(self, window: np.ndarray) -> np.ndarray:
        """Window samples -> real parts of the W DFT bins."""
        return np.real(self.fft.forward(window)).astype(np.float64)

    def inverse(self, vector: np.ndarray) -> np.ndarray:
        """Real bins (zero imaginary part) -> real part of the inverse DFT."""
        spectrum = np.asarray(vector, dtype=np.float64).astype(np.complex128)
        return np.real(self.fft.inverse(spectrum)).astype(np.float64)


class RawVectorizer:
    """Time-domain features: the window samples, copied."""

    kind = "raw"

    def forward(self, window: np.ndarray) -> np.ndarray:
        return np.array(window, dtype=np.float64)

    def inverse(self, vector: np.ndarray) -> np.ndarray:
        return np.clip(np.array(vector, dtype=np.float64), -1.0, 1.0)
