"""
Recording container and file I/O.

- Recording: immutable mono sample buffer plus its sample rate and file subtype
- load_recording(): audio file -> Recording (multi-channel mixed to mono)
- save_recording(): Recording -> audio file
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np
import soundfile as sf

from .errors import FileAccessError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True, eq=False)
class Recording:
    """
    Mono recording with samples in [-1, 1].

    The sample rate and the source file subtype (e.g. "PCM_24") are carried
    through the pipeline untouched.
    """
    samples: np.ndarray
    sample_rate: int
    subtype: str | None = None

    def __post_init__(self):
        samples = np.array(self.samples, dtype=np.float64).reshape(-1)
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    def __len__(self) -> int:
        return len(self.samples)

    def with_samples(self, samples: np.ndarray) -> "Recording":
        """New recording carrying this one's sample rate and subtype."""
        return Recording(samples=samples, sample_rate=self.sample_rate, subtype=self.subtype)


def load_recording(path: PathLike) -> Recording:
    """
    Load an audio file.

    Args:
        path: WAV (or any libsndfile format) path

    Returns:
        Recording, mixed down to mono and clipped to [-1, 1]
    """
    try:
        with sf.SoundFile(str(path)) as f:
            audio = f.read(dtype="float64", always_2d=True)
            sr = f.samplerate
            subtype = f.subtype
    except (RuntimeError, OSError) as e:
        raise FileAccessError(f"cannot read {path}: {e}") from e

    # Mono
    if audio.shape[1] > 1:
        audio = audio.mean(axis=1)
    else:
        audio = audio[:, 0]

    logger.debug("Loaded %s: %d samples @ %d Hz", path, len(audio), sr)
    return Recording(samples=np.clip(audio, -1.0, 1.0), sample_rate=int(sr), subtype=subtype)


def save_recording(path: PathLike, recording: Recording, subtype: str | None = None):
    """
    Write a recording to disk.

    Args:
        path: Output path (format chosen from the extension)
        recording: Recording to write
        subtype: libsndfile subtype, e.g. "PCM_16" or "FLOAT". Defaults to the
            recording's own subtype when the output format supports it,
            otherwise to the format default.
    """
    if subtype is None:
        subtype = _output_subtype(path, recording.subtype)
    try:
        sf.write(str(path), recording.samples, recording.sample_rate, subtype=subtype)
    except (RuntimeError, OSError, ValueError, TypeError) as e:
        raise FileAccessError(f"cannot write {path}: {e}") from e

    logger.debug("Saved %s: %d samples @ %d Hz", path, len(recording), recording.sample_rate)


def _output_subtype(path: PathLike, subtype: str | None) -> str | None:
    """Keep the source subtype if the output container can hold it."""
    fmt = Path(path).suffix.lstrip(".").upper()
    if subtype and fmt in sf.available_formats() and sf.check_format(fmt, subtype):
        return subtype
    return None
