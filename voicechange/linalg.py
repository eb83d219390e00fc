"""
Dense linear solve backend.

QR factorization and LU-based solves behind a small protocol so the
least-squares fitter can run against a stand-in in tests.
"""

from typing import Protocol

import numpy as np
import torch

from .errors import NumericError


class LinearSolver(Protocol):
    """QR factorization plus LU solve of square systems."""
    def qr(self, matrix: np.ndarray) -> tuple[np.ndarray, np.ndarray]: ...
    def lu_solve(self, matrix: np.ndarray, rhs: np.ndarray) -> np.ndarray: ...


class TorchLinearSolver:
    """torch.linalg backend in float64."""

    def qr(self, matrix: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Reduced QR: matrix (m x n, m >= n) = Q (m x n) @ R (n x n)."""
        a = torch.as_tensor(np.asarray(matrix), dtype=torch.float64)
        q, r = torch.linalg.qr(a, mode="reduced")
        return q.numpy(), r.numpy()

    def lu_solve(self, matrix: np.ndarray, rhs: np.ndarray) -> np.ndarray:
        """
        Solve matrix @ X = rhs through an LU factorization.

        Args:
            matrix: Square n x n system
            rhs: n x k block of right-hand sides, solved column by column

        Raises:
            NumericError: if the system is singular or the solution is not finite
        """
        a = torch.as_tensor(np.asarray(matrix), dtype=torch.float64)
        b = torch.as_tensor(np.asarray(rhs), dtype=torch.float64)
        if a.ndim != 2 or a.shape[0] != a.shape[1]:
            raise NumericError(f"LU solve needs a square matrix, got {tuple(a.shape)}")

        lu, pivots, info = torch.linalg.lu_factor_ex(a)
        if int(info) != 0:
            raise NumericError(f"singular matrix (zero pivot at {int(info)})")

        x = torch.linalg.lu_solve(lu, pivots, b)
        if not torch.isfinite(x).all():
            raise NumericError("least-squares solution is not finite")
        return x.numpy()
