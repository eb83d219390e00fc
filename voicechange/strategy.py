"""
Fitting strategies over a shared window/pair skeleton.

- SpectralLinearStrategy: real-part spectrum features, least-squares linear map
- RawNetworkStrategy: raw sample features, tanh network trained Hessian-free

generate() runs the common lifecycle: check lengths, build energy-gated
pairs, check there is enough data, fit, and report error where the
strategy supports it.
"""

import logging
from typing import List, Protocol

from .audio import Recording
from .config import LinearFitConfig, NetworkFitConfig
from .errors import InsufficientDataError
from .features import FFT, RawVectorizer, SpectralVectorizer, Vectorizer
from .linalg import LinearSolver
from .lstsq import LeastSquaresFitter
from .metrics import ErrorReport, compute_error_report
from .models import LinearModel, Model, NetworkModel
from .network import NonlinearFitter
from .pairs import TrainingPair, build_training_pairs

logger = logging.getLogger(__name__)


class FittingStrategy(Protocol):
    """One way of turning training pairs into a Model."""
    name: str
    window_size: int
    min_amplitude: float
    vectorizer: Vectorizer

    def fit(self, pairs: List[TrainingPair]) -> Model: ...
    def report(self, pairs: List[TrainingPair], model: Model) -> ErrorReport | None: ...


class SpectralLinearStrategy:
    """Spectral features, closed-form linear regression."""

    name = "spectral"
    config_class = LinearFitConfig

    def __init__(
        self,
        config: LinearFitConfig | None = None,
        fft: FFT | None = None,
        solver: LinearSolver | None = None,
    ):
        self.config = config or LinearFitConfig()
        self.window_size = self.config.window_size
        self.min_amplitude = self.config.min_amplitude
        self.vectorizer = SpectralVectorizer(fft)
        self.fitter = LeastSquaresFitter(self.config, solver)

    def fit(self, pairs: List[TrainingPair]) -> LinearModel:
        return self.fitter.fit(pairs)

    def report(self, pairs: List[TrainingPair], model: Model) -> ErrorReport:
        logger.info("Measuring error...")
        report = compute_error_report(pairs, model)
        report.log()
        return report


class RawNetworkStrategy:
    """Raw sample features, nonlinear network regression."""

    name = "network"
    config_class = NetworkFitConfig

    def __init__(self, config: NetworkFitConfig | None = None):
        self.config = config or NetworkFitConfig()
        self.window_size = self.config.window_size
        self.min_amplitude = self.config.min_amplitude
        self.vectorizer = RawVectorizer()
        self.fitter = NonlinearFitter(self.config)

    def fit(self, pairs: List[TrainingPair]) -> NetworkModel:
        return self.fitter.fit(pairs)

    def report(self, pairs: List[TrainingPair], model: Model) -> None:
        return None


STRATEGIES = {
    SpectralLinearStrategy.name: SpectralLinearStrategy,
    RawNetworkStrategy.name: RawNetworkStrategy,
}


def vectorizer_for_model(model: Model, fft: FFT | None = None) -> Vectorizer:
    """Vectorizer a model was trained with, chosen by its kind."""
    if model.kind == LinearModel.kind:
        return SpectralVectorizer(fft)
    if model.kind == NetworkModel.kind:
        return RawVectorizer()
    raise ValueError(f"unknown model kind: {model.kind!r}")


def fit_recordings(
    source: Recording,
    target: Recording,
    strategy: FittingStrategy,
) -> tuple[Model, List[TrainingPair]]:
    """
    Fit a model converting source windows into target windows.

    Returns:
        (model, the training pairs it was fit on)

    Raises:
        InsufficientDataError: mismatched lengths or fewer usable pairs than window_size
    """
    pairs = build_training_pairs(
        source, target, strategy.vectorizer, strategy.window_size, strategy.min_amplitude
    )
    if len(pairs) < strategy.window_size:
        raise InsufficientDataError(
            f"not enough samples (have {len(pairs)} need {strategy.window_size})"
        )

    return strategy.fit(pairs), pairs


def generate(
    source: Recording,
    target: Recording,
    strategy: FittingStrategy,
) -> tuple[Model, ErrorReport | None]:
    """
    fit_recordings() followed by the strategy's error report.

    Returns:
        (model, error report or None if the strategy does not report)
    """
    model, pairs = fit_recordings(source, target, strategy)
    return model, strategy.report(pairs, model)
