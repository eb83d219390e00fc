"""
Time-domain nonlinear regression.

Raw source windows are mapped to raw target windows by a tanh network
trained with HessianFreeOptimizer on the mean squared error.
"""

import logging
from typing import List

import numpy as np
import torch

from .config import NetworkFitConfig
from .errors import InsufficientDataError
from .hessfree import HessianFreeOptimizer, IterationStats, squared_error_sum
from .models import NetworkModel
from .pairs import TrainingPair, stack_pairs

logger = logging.getLogger(__name__)


class NonlinearFitter:
    """
    Fits a NetworkModel of shape W -> hidden... -> W.

    Example:
        >>> fitter = NonlinearFitter(NetworkFitConfig(window_size=8, hidden_sizes=(6,)))
        >>> model = fitter.fit(pairs)
    """

    def __init__(self, config: NetworkFitConfig | None = None):
        self.config = config or NetworkFitConfig()
        self.history: list[IterationStats] = []

    def init_model(self) -> NetworkModel:
        """Randomly initialized network (seeded when config.seed is set)."""
        if self.config.seed is not None:
            torch.manual_seed(self.config.seed)
        return NetworkModel(self.config.layer_sizes)

    def fit(self, pairs: List[TrainingPair], model: NetworkModel | None = None) -> NetworkModel:
        """
        Train a network on raw window pairs.

        Args:
            pairs: Raw (time-domain) training pairs
            model: Starting network (fresh random one if None)

        Returns:
            The trained network, frozen for inference

        Raises:
            InsufficientDataError: no pairs, or vectors not of length window_size
        """
        if not pairs:
            raise InsufficientDataError("no training pairs survived the energy gate")
        sources, targets = stack_pairs(pairs)

        w = self.config.window_size
        if sources.shape[1] != w:
            raise InsufficientDataError(f"feature vectors have length {sources.shape[1]}, expected {w}")

        model = model or self.init_model()
        if model.input_size != w:
            raise ValueError(f"network input size {model.input_size} != window size {w}")

        dtype = next(model.net.parameters()).dtype
        inputs = torch.as_tensor(sources, dtype=dtype)
        outputs = torch.as_tensor(targets, dtype=dtype)

        logger.info(
            "Training %s network on %d samples...",
            "->".join(str(n) for n in model.layer_sizes), len(pairs),
        )
        optimizer = HessianFreeOptimizer(model, self.config, cost=squared_error_sum)
        self.history = optimizer.fit(inputs, outputs)

        if self.history:
            logger.info("Final cost %.6g after %d iterations", self.history[-1].cost, len(self.history))
        return model.freeze()


def network_cost(model: NetworkModel, pairs: List[TrainingPair]) -> float:
    """Mean squared error of a network over training pairs."""
    sources, targets = stack_pairs(pairs)
    predicted = np.stack([model.apply(s) for s in sources])
    return float(np.mean((predicted - targets) ** 2))
