"""
Fitting and inference configuration.

Window size, energy gate and solver constants are carried in explicit
config objects rather than module globals so fitters and tests can run
at any window size.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class LinearFitConfig:
    """Spectral linear regression settings."""
    window_size: int = 512
    min_amplitude: float = 1e-2     # energy gate on self dot-product
    damping: float = 1e-5           # added to the source matrix diagonal

    def __post_init__(self):
        if self.window_size <= 0:
            raise ValueError(f"window_size must be positive, got {self.window_size}")
        if self.min_amplitude < 0:
            raise ValueError(f"min_amplitude must be non-negative, got {self.min_amplitude}")
        if self.damping < 0:
            raise ValueError(f"damping must be non-negative, got {self.damping}")


@dataclass(frozen=True)
class NetworkFitConfig:
    """Time-domain nonlinear regression settings."""
    window_size: int = 1024
    min_amplitude: float = 1e-2
    hidden_sizes: tuple[int, ...] = (300, 500)

    # Optimizer
    damping: float = 0.1            # initial Gauss-Newton damping, adapted per iteration
    max_sub_batch: int = 32         # samples per gradient/curvature evaluation
    concurrency: int = 2            # sub-batches evaluated at once
    min_iterations: int = 5
    max_iterations: int = 100
    cg_iterations: int = 50
    tolerance: float = 1e-4         # relative improvement that counts as a plateau
    max_rejections: int = 10        # consecutive rejected steps before giving up
    seed: int | None = None

    def __post_init__(self):
        if self.window_size <= 0:
            raise ValueError(f"window_size must be positive, got {self.window_size}")
        if any(h <= 0 for h in self.hidden_sizes):
            raise ValueError(f"hidden_sizes must be positive, got {self.hidden_sizes}")
        if self.damping < 0:
            raise ValueError(f"damping must be non-negative, got {self.damping}")
        if self.max_sub_batch <= 0 or self.concurrency <= 0:
            raise ValueError("max_sub_batch and concurrency must be positive")
        if not 0 < self.min_iterations <= self.max_iterations:
            raise ValueError(
                f"need 0 < min_iterations <= max_iterations, "
                f"got {self.min_iterations} and {self.max_iterations}"
            )
        if self.cg_iterations <= 0:
            raise ValueError(f"cg_iterations must be positive, got {self.cg_iterations}")
        if self.max_rejections <= 0:
            raise ValueError(f"max_rejections must be positive, got {self.max_rejections}")

    @property
    def layer_sizes(self) -> tuple[int, ...]:
        """Dense layer widths from input to output."""
        return (self.window_size, *self.hidden_sizes, self.window_size)
