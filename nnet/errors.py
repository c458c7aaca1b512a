"""
Exception types raised by the training engine.

Numeric instability (NaN / inf in activations or loss) is deliberately absent:
non-finite values are returned to the caller, who decides when to stop.
"""


class NetworkError(Exception):
    """Base class for every error raised by the engine."""


class ConfigurationError(NetworkError, ValueError):
    """Invalid architecture, activation kind or hyperparameter."""


class ShapeMismatchError(NetworkError, ValueError):
    """An input, target or weight matrix does not match the layer sizes."""


class InvalidStateError(NetworkError, RuntimeError):
    """Operation not possible in the current state (no trace, bad neuron index)."""
