"""
voicechange - Windowed voice conversion

Learns a transform from one speaker's audio windows to another's and
applies it to new recordings. Two fitting strategies share the same
window/pair/inference skeleton:
- Spectral linear regression (real-part DFT features, regularized least squares)
- Time-domain nonlinear regression (raw samples, tanh network, Hessian-free training)

Example:
    >>> from voicechange import load_recording, generate, translate, SpectralLinearStrategy
    >>>
    >>> source = load_recording("source.wav")
    >>> target = load_recording("target.wav")
    >>> model, report = generate(source, target, SpectralLinearStrategy())
    >>> converted = translate(model, load_recording("new.wav"))
"""

__version__ = "1.0.0"

from .config import LinearFitConfig, NetworkFitConfig
from .errors import (
    VoiceChangeError,
    FileAccessError,
    FormatError,
    InsufficientDataError,
    NumericError,
)
from .audio import Recording, load_recording, save_recording
from .windows import AudioWindowSegmenter
from .features import FFT, NumpyFFT, SpectralVectorizer, RawVectorizer
from .pairs import TrainingPair, build_training_pairs
from .linalg import LinearSolver, TorchLinearSolver
from .models import LinearModel, NetworkModel
from .lstsq import LeastSquaresFitter
from .hessfree import HessianFreeOptimizer
from .network import NonlinearFitter
from .metrics import ErrorReport, compute_error_report, windowed_mse
from .strategy import (
    STRATEGIES,
    SpectralLinearStrategy,
    RawNetworkStrategy,
    fit_recordings,
    generate,
    vectorizer_for_model,
)
from .inference import InferenceRunner, translate
from .serialization import serialize, deserialize, save_model, load_model

__all__ = [
    # Config
    "LinearFitConfig",
    "NetworkFitConfig",
    # Errors
    "VoiceChangeError",
    "FileAccessError",
    "FormatError",
    "InsufficientDataError",
    "NumericError",
    # Audio
    "Recording",
    "load_recording",
    "save_recording",
    # Windows/features
    "AudioWindowSegmenter",
    "FFT",
    "NumpyFFT",
    "SpectralVectorizer",
    "RawVectorizer",
    "TrainingPair",
    "build_training_pairs",
    # Fitting
    "LinearSolver",
    "TorchLinearSolver",
    "LinearModel",
    "NetworkModel",
    "LeastSquaresFitter",
    "HessianFreeOptimizer",
    "NonlinearFitter",
    "SpectralLinearStrategy",
    "RawNetworkStrategy",
    "STRATEGIES",
    "fit_recordings",
    "generate",
    "vectorizer_for_model",
    # Metrics
    "ErrorReport",
    "compute_error_report",
    "windowed_mse",
    # Inference/persistence
    "InferenceRunner",
    "translate",
    "serialize",
    "deserialize",
    "save_model",
    "load_model",
]
