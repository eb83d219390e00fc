"""
Pytest configuration for voicechange tests.

Fixes:
- Torch thread cap to prevent hangs in constrained environments
- Adds repo root to sys.path for import stability
"""

import os
import sys
from pathlib import Path

# Add repo root to path for imports
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

# Thread cap for Torch - prevents hangs in containers/CI
os.environ.setdefault("OMP_NUM_THREADS", "1")
os.environ.setdefault("MKL_NUM_THREADS", "1")

import numpy as np
import torch
torch.set_num_threads(1)

import pytest

from voicechange import Recording


def sine(n: int, amplitude: float, period: float = 37.3, sample_rate: int = 8000) -> Recording:
    """Sine recording whose period does not divide small window sizes."""
    t = np.arange(n)
    return Recording(amplitude * np.sin(2 * np.pi * t / period + 0.3), sample_rate)


@pytest.fixture
def source_sine():
    """512 samples of a loud sine."""
    return sine(512, 0.8)


@pytest.fixture
def target_sine():
    """Same sine at a lower amplitude."""
    return sine(512, 0.4)


@pytest.fixture
def make_sine():
    """Factory for sine recordings of any length."""
    return sine


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
