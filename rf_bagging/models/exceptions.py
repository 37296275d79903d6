"""
Exception types raised by the forest components.

All of them derive from ValueError so callers that already guard model
calls with ``except ValueError`` keep working.
"""


class TrainingError(ValueError):
    """A learner could not be fitted (bad hyperparameters or training data)."""


class PredictionError(ValueError):
    """A learner could not compute a decision function for the given input."""


class SamplingError(ValueError):
    """A bootstrap sample was requested from an empty population."""


class ModelFormatError(ValueError):
    """A serialized model payload is malformed or of an unknown type."""
