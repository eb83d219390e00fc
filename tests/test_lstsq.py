"""Least-squares fitter tests."""

import numpy as np
import pytest

from voicechange import (
    InsufficientDataError,
    LeastSquaresFitter,
    LinearFitConfig,
    NumericError,
    TorchLinearSolver,
    TrainingPair,
)
from voicechange.lstsq import add_damping


class RecordingSolver(TorchLinearSolver):
    """Solver that counts calls."""

    def __init__(self):
        self.calls = 0

    def qr(self, matrix):
        self.calls += 1
        return super().qr(matrix)

    def lu_solve(self, matrix, rhs):
        self.calls += 1
        return super().lu_solve(matrix, rhs)


def random_pairs(rng, n, w, transform=None):
    pairs = []
    for _ in range(n):
        src = rng.uniform(-1, 1, w)
        tgt = src.copy() if transform is None else transform @ src
        pairs.append(TrainingPair(src, tgt))
    return pairs


def test_identity_data_gives_identity_model(rng):
    fitter = LeastSquaresFitter(LinearFitConfig(window_size=4))
    model = fitter.fit(random_pairs(rng, 20, 4))

    assert model.matrix.shape == (4, 4)
    np.testing.assert_allclose(model.matrix, np.eye(4), atol=1e-3)

    v = np.array([0.3, -0.1, 0.7, 0.2])
    np.testing.assert_allclose(model.apply(v), v, atol=1e-3)


def test_recovers_known_transform(rng):
    """apply(source) must predict the target, not its transpose."""
    k = rng.normal(size=(4, 4))
    model = LeastSquaresFitter(LinearFitConfig(window_size=4, damping=0.0)).fit(
        random_pairs(rng, 30, 4, transform=k)
    )

    np.testing.assert_allclose(model.matrix, k, atol=1e-8)


def test_exactly_window_size_pairs_is_enough(rng):
    model = LeastSquaresFitter(LinearFitConfig(window_size=4)).fit(random_pairs(rng, 4, 4))
    assert model.input_size == 4


def test_insufficient_pairs_no_solve(rng):
    solver = RecordingSolver()
    fitter = LeastSquaresFitter(LinearFitConfig(window_size=4), solver=solver)

    with pytest.raises(InsufficientDataError, match="have 3 need 4"):
        fitter.fit(random_pairs(rng, 3, 4))
    assert solver.calls == 0


def test_wrong_vector_length(rng):
    fitter = LeastSquaresFitter(LinearFitConfig(window_size=4))
    with pytest.raises(InsufficientDataError):
        fitter.fit(random_pairs(rng, 8, 6))


def test_singular_system_is_reported():
    pairs = [TrainingPair(np.zeros(4), np.ones(4)) for _ in range(6)]
    fitter = LeastSquaresFitter(LinearFitConfig(window_size=4, damping=0.0))

    with pytest.raises(NumericError):
        fitter.fit(pairs)


def test_damping_makes_zero_data_solvable():
    pairs = [TrainingPair(np.zeros(4), np.ones(4)) for _ in range(6)]
    model = LeastSquaresFitter(LinearFitConfig(window_size=4)).fit(pairs)
    assert np.isfinite(model.matrix).all()


def test_add_damping_touches_leading_diagonal_only():
    damped = add_damping(np.zeros((3, 5)), 0.5)
    expected = np.zeros((3, 5))
    expected[0, 0] = expected[1, 1] = expected[2, 2] = 0.5
    np.testing.assert_array_equal(damped, expected)

    damped = add_damping(np.zeros((6, 2)), 0.5)
    assert damped.trace() == 1.0
    assert damped.sum() == 1.0


def test_fit_is_deterministic(rng):
    pairs = random_pairs(rng, 12, 4)
    fitter = LeastSquaresFitter(LinearFitConfig(window_size=4))
    np.testing.assert_array_equal(fitter.fit(pairs).matrix, fitter.fit(pairs).matrix)


def test_apply_is_bit_identical(rng):
    model = LeastSquaresFitter(LinearFitConfig(window_size=4)).fit(random_pairs(rng, 8, 4))
    v = rng.uniform(-1, 1, 4)
    first = model.apply(v)
    for _ in range(5):
        np.testing.assert_array_equal(model.apply(v), first)
