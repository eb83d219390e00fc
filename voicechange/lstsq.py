"""
Regularized least-squares fit of a linear window transform.

Source vectors are stacked as rows of A and targets as rows of B. A small
damping value is added to A's diagonal, A is QR-factored, and
R X = Q^T B is solved by LU. The model is X^T, so apply(source) predicts
the target.
"""

import logging
from typing import List

import numpy as np

from .config import LinearFitConfig
from .errors import InsufficientDataError
from .linalg import LinearSolver, TorchLinearSolver
from .models import LinearModel
from .pairs import TrainingPair, stack_pairs

logger = logging.getLogger(__name__)


def add_damping(matrix: np.ndarray, damping: float) -> np.ndarray:
    """Copy of matrix with damping added to its first min(rows, cols) diagonal entries."""
    damped = np.array(matrix, dtype=np.float64)
    n = min(damped.shape)
    damped[np.arange(n), np.arange(n)] += damping
    return damped


class LeastSquaresFitter:
    """
    Closed-form linear regression between source and target vectors.

    Example:
        >>> fitter = LeastSquaresFitter(LinearFitConfig(window_size=4))
        >>> model = fitter.fit(pairs)
        >>> predicted = model.apply(pairs[0].source)
    """

    def __init__(self, config: LinearFitConfig | None = None, solver: LinearSolver | None = None):
        self.config = config or LinearFitConfig()
        self.solver = solver or TorchLinearSolver()

    def check_sufficient(self, pairs: List[TrainingPair]):
        """Raise InsufficientDataError unless there are at least W pairs."""
        need = self.config.window_size
        if len(pairs) < need:
            raise InsufficientDataError(
                f"not enough samples (have {len(pairs)} need {need})"
            )

    def fit(self, pairs: List[TrainingPair]) -> LinearModel:
        """
        Fit a W x W linear model.

        Raises:
            InsufficientDataError: fewer than window_size pairs, or vectors of the wrong length
            NumericError: singular or non-finite solve
        """
        self.check_sufficient(pairs)
        sources, targets = stack_pairs(pairs)

        w = self.config.window_size
        if sources.shape[1] != w or targets.shape[1] != w:
            raise InsufficientDataError(
                f"feature vectors have length {sources.shape[1]}, expected {w}"
            )

        logger.info("Creating QR decomposition with %d samples...", len(pairs))
        q, r = self.solver.qr(add_damping(sources, self.config.damping))

        logger.info("Solving least-squares matrix...")
        # Each column of Q^T B is one right-hand side; its solution is one row of the model.
        solution = self.solver.lu_solve(r, q.T @ targets)
        return LinearModel(solution.T)
