"""
Activation functions and their derivatives.

Every derivative is evaluated at the pre-activation value z (not at a = f(z)),
so backpropagation can call it directly on the cached z of a layer.
"""

from enum import Enum
from typing import Callable, Dict, Tuple, Union

import numpy as np

from .errors import ConfigurationError


# Element-wise functions


def identity(z: np.ndarray) -> np.ndarray:
    """Linear activation: f(x) = x"""
    return z


def d_identity(z: np.ndarray) -> np.ndarray:
    return np.ones_like(z)


def tanh_act(z: np.ndarray) -> np.ndarray:
    """Tanh activation: f(x) = tanh(x); range (-1,1)"""
    return np.tanh(z)


def d_tanh(z: np.ndarray) -> np.ndarray:
    t = np.tanh(z)                              # Reuse forward tanh
    return 1.0 - t * t                          # f'(x) = 1 - tanh^2(x)


def relu(z: np.ndarray) -> np.ndarray:
    """ReLU activation: f(x) = max(0, x)"""
    return np.maximum(0.0, z)


def d_relu(z: np.ndarray) -> np.ndarray:
    return (z > 0).astype(float)                # 1 for z>0, 0 at and below the kink


def sigmoid(z: np.ndarray) -> np.ndarray:
    """Sigmoid activation: f(x) = 1 / (1 + e^(-x)); range (0,1)"""
    return 1.0 / (1.0 + np.exp(-np.clip(z, -500.0, 500.0)))  # Clip keeps exp() finite


def d_sigmoid(z: np.ndarray) -> np.ndarray:
    s = sigmoid(z)                              # Reuse forward sigmoid
    return s * (1.0 - s)                        # f'(x) = f(x)(1-f(x))


ActivationFn = Callable[[np.ndarray], np.ndarray]


class Activation(Enum):
    """Closed set of activation kinds supported by the engine."""

    IDENTITY = "identity"
    TANH = "tanh"
    RELU = "relu"
    SIGMOID = "sigmoid"

    @classmethod
    def parse(cls, value: Union[str, "Activation"]) -> "Activation":
        """Resolve a kind from its name; "linear" is accepted for identity."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = value.strip().lower()
            name = _ALIASES.get(name, name)
            for kind in cls:
                if kind.value == name:
                    return kind
        raise ConfigurationError(
            f"Unknown activation: {value!r} (expected one of {[k.value for k in cls]})"
        )

    @property
    def fn(self) -> ActivationFn:
        return _TABLE[self][0]

    @property
    def derivative(self) -> ActivationFn:
        return _TABLE[self][1]

    @property
    def formula(self) -> str:
        return _DESCRIPTIONS[self][0]

    @property
    def output_range(self) -> str:
        return _DESCRIPTIONS[self][1]

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self][2]


_ALIASES = {"linear": "identity"}

_TABLE: Dict[Activation, Tuple[ActivationFn, ActivationFn]] = {
    Activation.IDENTITY: (identity, d_identity),
    Activation.TANH: (tanh_act, d_tanh),
    Activation.RELU: (relu, d_relu),
    Activation.SIGMOID: (sigmoid, d_sigmoid),
}

# (formula, output range, description) shown by visualizers next to a neuron
_DESCRIPTIONS: Dict[Activation, Tuple[str, str, str]] = {
    Activation.IDENTITY: ("f(x) = x", "(-inf, inf)", "No transformation, used in the output layer"),
    Activation.TANH: ("tanh(x) = (e^x - e^-x) / (e^x + e^-x)", "[-1, 1]", "Zero-centred, a good fit for hidden layers"),
    Activation.RELU: ("ReLU(x) = max(0, x)", "[0, inf)", "Simple and fast, can \"die\" when x < 0"),
    Activation.SIGMOID: ("sigmoid(x) = 1 / (1 + e^-x)", "(0, 1)", "Classic squashing function, gradients vanish at the extremes"),
}
