"""
Network configuration: architecture, activation kinds and hyperparameters.
"""

import math
import numbers
from dataclasses import dataclass, field, replace as _dc_replace
from typing import Any, Dict, List, Optional, Sequence

from .activations import Activation
from .errors import ConfigurationError

WEIGHT_INITS = ("xavier", "he")


@dataclass
class NetworkConfig:
    """
    Full description of a network.

    layer_sizes:       [n0, n1, ..., nL]; n0 = input width, nL = output width
    hidden_activation: activation of layers 1..L-1
    output_activation: activation of layer L
    learning_rate:     SGD step size (> 0)
    momentum:          heavy-ball coefficient in [0, 1)
    weight_init:       "xavier" -> U(+-sqrt(6/(fan_in+fan_out)))
                       "he"     -> U(+-sqrt(2/(fan_in+fan_out)))
    """

    layer_sizes: List[int] = field(default_factory=lambda: [1, 8, 8, 1])
    hidden_activation: Activation = Activation.TANH
    output_activation: Activation = Activation.IDENTITY
    learning_rate: float = 0.01
    momentum: float = 0.0
    weight_init: str = "xavier"

    def __post_init__(self):
        self.validate()

    @classmethod
    def from_hidden_layers(cls, hidden_layers: Sequence[int] = (8, 8), **kwargs) -> "NetworkConfig":
        """Scalar-in, scalar-out network: [1, *hidden_layers, 1]."""
        return cls(layer_sizes=[1, *hidden_layers, 1], **kwargs)

    def validate(self) -> None:
        try:
            sizes = list(self.layer_sizes)
        except TypeError:
            raise ConfigurationError(f"Layer sizes must be a sequence, got {self.layer_sizes!r}") from None
        if len(sizes) < 2:
            raise ConfigurationError(f"Need at least 2 layer sizes (input and output), got {sizes}")
        for size in sizes:
            if isinstance(size, bool) or not isinstance(size, numbers.Integral) or size <= 0:
                raise ConfigurationError(f"Layer sizes must be positive integers, got {sizes}")
        self.layer_sizes = [int(size) for size in sizes]

        self.hidden_activation = Activation.parse(self.hidden_activation)
        self.output_activation = Activation.parse(self.output_activation)

        if self.weight_init not in WEIGHT_INITS:
            raise ConfigurationError(f"Unknown weight init {self.weight_init!r}, expected one of {WEIGHT_INITS}")

        self.learning_rate = check_learning_rate(self.learning_rate)
        self.momentum = check_momentum(self.momentum)

    def replace(self, **changes) -> "NetworkConfig":
        """Validated copy with some fields changed."""
        return _dc_replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layer_sizes": list(self.layer_sizes),
            "hidden_activation": self.hidden_activation.value,
            "output_activation": self.output_activation.value,
            "learning_rate": self.learning_rate,
            "momentum": self.momentum,
            "weight_init": self.weight_init,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "NetworkConfig":
        """
        Build a config from a plain dict (e.g. a decoded worker message).
        "hidden_layers" may be given instead of "layer_sizes".
        """
        data = dict(data or {})
        hidden = data.pop("hidden_layers", None)
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        if hidden is not None:
            if "layer_sizes" in data:
                raise ConfigurationError("Give either layer_sizes or hidden_layers, not both")
            return cls.from_hidden_layers(hidden, **data)
        return cls(**data)


def check_learning_rate(value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Learning rate must be a number, got {value!r}") from None
    if not math.isfinite(value) or value <= 0.0:
        raise ConfigurationError(f"Learning rate must be a positive finite float, got {value}")
    return value


def check_momentum(value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Momentum must be a number, got {value!r}") from None
    if not 0.0 <= value < 1.0:
        raise ConfigurationError(f"Momentum must be in [0, 1), got {value}")
    return value
