"""
nnet - a small feedforward neural network trained with momentum SGD,
built on numpy and meant to be watched while it learns.
"""

from .activations import Activation
from .config import NetworkConfig
from .datasets import Dataset, sine_dataset
from .errors import ConfigurationError, InvalidStateError, NetworkError, ShapeMismatchError
from .network import (
    ForwardTrace,
    NeuralNetwork,
    NeuronInfo,
    Parameters,
    PatternInfo,
    create,
    is_diverged,
    sweep_range,
)
from .worker import TrainingWorker

__version__ = "0.1.0"

__all__ = [
    "Activation",
    "ConfigurationError",
    "Dataset",
    "ForwardTrace",
    "InvalidStateError",
    "NetworkConfig",
    "NetworkError",
    "NeuralNetwork",
    "NeuronInfo",
    "Parameters",
    "PatternInfo",
    "ShapeMismatchError",
    "TrainingWorker",
    "create",
    "is_diverged",
    "sweep_range",
    "sine_dataset",
]
