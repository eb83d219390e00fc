"""Errors raised by the voice conversion pipeline."""


class VoiceChangeError(Exception):
    """Base class for all pipeline errors."""


class FileAccessError(VoiceChangeError, OSError):
    """Audio or model file could not be read or written."""


class FormatError(VoiceChangeError, ValueError):
    """Persisted model is malformed."""


class InsufficientDataError(VoiceChangeError, ValueError):
    """Too few usable training pairs, or source/target lengths differ."""


class NumericError(VoiceChangeError, ArithmeticError):
    """Linear solve was singular or produced non-finite values."""
