"""Vectorizer tests."""

import numpy as np

from voicechange import RawVectorizer, SpectralVectorizer


class IdentityFFT:
    """Stand-in transform that leaves values untouched."""

    def forward(self, samples):
        return np.asarray(samples, dtype=np.complex128)

    def inverse(self, spectrum):
        return np.asarray(spectrum, dtype=np.complex128)


def test_spectral_forward_is_real_part_of_dft(rng):
    window = rng.uniform(-1, 1, 16)
    vec = SpectralVectorizer().forward(window)

    assert vec.shape == (16,)
    assert vec.dtype == np.float64
    np.testing.assert_allclose(vec, np.real(np.fft.fft(window)))


def test_spectral_roundtrip_loses_imaginary_part(rng):
    """Only the even part of a window survives forward then inverse."""
    window = rng.uniform(-1, 1, 16)
    vec = SpectralVectorizer()
    restored = vec.inverse(vec.forward(window))

    even = 0.5 * (window + np.roll(window[::-1], 1))
    np.testing.assert_allclose(restored, even, atol=1e-12)
    assert not np.allclose(restored, window)


def test_spectral_zero_vector_roundtrip():
    vec = SpectralVectorizer()
    zero = np.zeros(8)
    np.testing.assert_array_equal(vec.inverse(vec.forward(zero)), zero)


def test_spectral_uses_injected_fft():
    vec = SpectralVectorizer(IdentityFFT())
    window = np.array([0.1, -0.2, 0.3, -0.4])

    np.testing.assert_array_equal(vec.forward(window), window)
    np.testing.assert_array_equal(vec.inverse(window), window)


def test_raw_forward_copies():
    window = np.array([0.5, -0.5, 0.25])
    vec = RawVectorizer().forward(window)

    np.testing.assert_array_equal(vec, window)
    vec[0] = 9.0
    assert window[0] == 0.5


def test_raw_inverse_clips():
    out = RawVectorizer().inverse(np.array([2.0, -3.0, 0.5]))
    np.testing.assert_array_equal(out, [1.0, -1.0, 0.5])
