from __future__ import annotations


class BigramError(ValueError):
    """Base class for every failure raised by the bigram model."""


class EmptyCorpusError(BigramError):
    """Training text is too short to yield a single transition."""


class InvalidAlphaError(BigramError):
    """Smoothing parameter is not a positive finite number."""


class InvalidTemperatureError(BigramError):
    """Sampling temperature is not a positive finite number."""


class InvalidLengthError(BigramError):
    """Requested generation length is negative or not an integer."""


class EmptyModelError(BigramError):
    """Operation needs a model with at least one vocabulary entry."""


class NoScorableTransitionsError(BigramError):
    """Evaluation text has no adjacent pair inside the vocabulary."""


class MalformedSnapshotError(BigramError):
    """Snapshot text is not a structurally valid model export."""


class InvalidTrainConfigError(BigramError):
    """Gradient-fit settings (steps, batch size, learning rate) are out of range."""
