"""
Feedforward Neural Network (from scratch) - single-sample SGD with momentum

Features:
- Variable depth/width, scalar or vector input/output
- Separate hidden and output activations (identity, tanh, relu, sigmoid)
- Xavier/Glorot or He-style uniform initialization, zero biases
- Heavy-ball momentum SGD on mean squared error
- Explicit forward traces (pre- and post-activations) consumed by backprop
- Per-neuron introspection for visualizers

Data shape conventions:
    x:    (n0,)              -> one input sample (scalars are promoted to (1,))
    w_l:  (n_l, n_{l-1})     -> row = destination neuron, column = source neuron
    b_l:  (n_l,)
    a_l, z_l: (n_l,)         -> post- and pre-activation of layer l (layer 0 = input)

A network instance is not thread-safe: at most one forward/backward pair may be
in flight per instance. Use one instance per worker for parallel training.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from tqdm import tqdm

from .activations import Activation
from .config import NetworkConfig, check_learning_rate, check_momentum
from .errors import InvalidStateError, ShapeMismatchError

logger = logging.getLogger("nnet.network")

Sample = Tuple[Any, Any]
ConfigLike = Union[NetworkConfig, Dict[str, Any]]


# Value types


@dataclass
class ForwardTrace:
    """
    Cached values of one forward pass.
    pre_activations[l] is z_l, activations[l] is a_l; index 0 holds the raw input in both.
    """

    pre_activations: List[np.ndarray]
    activations: List[np.ndarray]

    @property
    def output(self) -> np.ndarray:
        return self.activations[-1]

    @property
    def depth(self) -> int:
        """Number of computed layers."""
        return len(self.activations) - 1

    @property
    def widths(self) -> List[int]:
        return [a.shape[0] for a in self.activations]


@dataclass
class Parameters:
    """Read-only snapshot of weights and biases (index 0 = layer 1)."""

    weights: List[np.ndarray]
    biases: List[np.ndarray]


@dataclass
class PatternInfo:
    """Short description of what a neuron reacts to."""

    kind: str                                   # input_sensitivity | combines_hidden | max_weight | receives_input
    sign: Optional[str] = None
    value: Optional[float] = None
    neuron_num: Optional[int] = None            # 1-based source neuron for max_weight


@dataclass
class NeuronInfo:
    layer: int
    index: int
    layer_type: str                             # input | hidden | output
    weights: np.ndarray
    bias: float
    activation: Activation
    pre_activation: float
    post_activation: float
    dominant_input_index: Optional[int]
    layer_number: Optional[int] = None          # hidden layer number, None for input/output

    @property
    def pattern(self) -> PatternInfo:
        if self.layer == 0 or self.weights.size == 0:
            return PatternInfo("receives_input")
        dominant = self.weights[self.dominant_input_index]
        sign = "+" if dominant > 0 else "-"
        value = float(abs(dominant))
        if self.layer == 1:
            return PatternInfo("input_sensitivity", sign=sign, value=value)
        if self.layer_type == "output":
            return PatternInfo("combines_hidden")
        return PatternInfo("max_weight", sign=sign, value=value, neuron_num=self.dominant_input_index + 1)

    def to_dict(self) -> Dict[str, Any]:
        pattern = self.pattern
        return {
            "layer": self.layer,
            "index": self.index,
            "layer_type": self.layer_type,
            "layer_number": self.layer_number,
            "weights": self.weights.tolist(),
            "bias": self.bias,
            "activation": self.activation.value,
            "pre_activation": self.pre_activation,
            "post_activation": self.post_activation,
            "dominant_input_index": self.dominant_input_index,
            "pattern": {k: v for k, v in vars(pattern).items() if v is not None},
        }


def is_diverged(loss: float, threshold: Optional[float] = None) -> bool:
    """True if the loss is non-finite or above the caller's threshold."""
    if not math.isfinite(loss):
        return True
    return threshold is not None and loss > threshold


def sweep_range(start: float = -6.0, stop: float = 6.0, num: int = 50) -> np.ndarray:
    """Evenly spaced scalar inputs for neuron_pattern()."""
    return np.linspace(start, stop, num)


# Neural Network class


class NeuralNetwork:
    def __init__(self, config: Optional[ConfigLike] = None, seed: Optional[int] = None):
        """
        Constructor validates the configuration and initializes parameters.
        seed fixes the RNG used for weight initialization and epoch shuffling.
        """
        self.config = _to_config(config)                          # Validated private copy
        self.rng = np.random.default_rng(seed)                    # Per-instance RNG (init + shuffling)

        #  Containers for params/state
        self.parameters: Dict[str, np.ndarray] = {}               # w1,b1,...,wL,bL
        self.velocity: Dict[str, np.ndarray] = {}                 # Momentum buffers, same keys/shapes
        self.last_trace: Optional[ForwardTrace] = None            # Most recent forward pass
        self.epoch = 0                                            # Completed calls to train_epoch()
        self.costs: List[float] = []                              # Loss per epoch recorded by fit()

        self._resolve_activations()
        self.initialize_parameters()

    def __repr__(self):
        return (
            f"NeuralNetwork(layers={self.architecture}, hidden={self.config.hidden_activation.value}, "
            f"output={self.config.output_activation.value}, epoch={self.epoch})"
        )

    @property
    def architecture(self) -> List[int]:
        return list(self.config.layer_sizes)

    @property
    def num_layers(self) -> int:
        """Number of computed layers L (the input layer is not counted)."""
        return len(self.config.layer_sizes) - 1

    def get_config(self) -> NetworkConfig:
        return self.config.replace()

    #  Parameter initialization
    def _resolve_activations(self):
        # Activation per layer index 0..L, fixed until the next reconfigure()
        L = self.num_layers
        self._layer_activations = (
            [Activation.IDENTITY]
            + [self.config.hidden_activation] * (L - 1)
            + [self.config.output_activation]
        )

    def initialize_parameters(self):
        """
        Initialize weights and biases for all layers (1..L) and zero the momentum buffers.
        Weights are drawn from U(-limit, limit):
            xavier: limit = sqrt(6 / (fan_in + fan_out))
            he:     limit = sqrt(2 / (fan_in + fan_out))
        """
        sizes = self.config.layer_sizes
        numerator = 6.0 if self.config.weight_init == "xavier" else 2.0
        self.parameters = {}
        self.velocity = {}
        for i in range(1, len(sizes)):
            fan_in = sizes[i - 1]                                 # n_{l-1}
            fan_out = sizes[i]                                    # n_l
            limit = np.sqrt(numerator / (fan_in + fan_out))

            self.parameters[f"w{i}"] = self.rng.uniform(-limit, limit, size=(fan_out, fan_in))
            self.parameters[f"b{i}"] = np.zeros(fan_out)
            self.velocity[f"w{i}"] = np.zeros((fan_out, fan_in))
            self.velocity[f"b{i}"] = np.zeros(fan_out)

    #  Shape helpers
    @staticmethod
    def _as_vector(value: Any, width: int, what: str) -> np.ndarray:
        """Copy value into a 1-D float vector of the given width."""
        try:
            vec = np.array(value, dtype=float)
        except (TypeError, ValueError) as e:
            raise ShapeMismatchError(f"{what} is not numeric: {value!r}") from e
        if vec.ndim == 0:
            vec = vec.reshape(1)                                  # Scalar -> width-1 vector
        if vec.ndim != 1 or vec.shape[0] != width:
            raise ShapeMismatchError(f"{what} has shape {vec.shape}, expected ({width},)")
        return vec

    @staticmethod
    def _affine(layer: int, W: np.ndarray, a_prev: np.ndarray, b: np.ndarray) -> np.ndarray:
        if W.ndim != 2 or W.shape[1] != a_prev.shape[0] or W.shape[0] != b.shape[0]:
            raise ShapeMismatchError(
                f"Layer {layer}: weights {W.shape} incompatible with input {a_prev.shape} and bias {b.shape}"
            )
        return np.dot(W, a_prev) + b

    def _prepare_samples(self, samples: Iterable[Sample]) -> List[Tuple[np.ndarray, np.ndarray]]:
        n_in, n_out = self.config.layer_sizes[0], self.config.layer_sizes[-1]
        return [
            (self._as_vector(x, n_in, "Input"), self._as_vector(y, n_out, "Target"))
            for x, y in samples
        ]

    #  Forward propagation
    def forward(self, x: Any) -> ForwardTrace:
        """
        Perform forward propagation on one sample.
        Input:  x, scalar or vector of width n0
        Output: ForwardTrace with z and a for every layer; trace.output is a_L
        Side effects:
            Replaces self.last_trace (read by neuron_info and backward without a trace).
        """
        a = self._as_vector(x, self.config.layer_sizes[0], "Input")
        pre_activations = [a]                                     # z_0 is the raw input
        activations = [a]                                         # a_0 is the raw input

        for l in range(1, self.num_layers + 1):
            W = self.parameters[f"w{l}"]                          # Weight matrix of layer l
            b = self.parameters[f"b{l}"]                          # Bias vector of layer l
            z = self._affine(l, W, a, b)                          # z_l = W_l a_{l-1} + b_l
            a = self._layer_activations[l].fn(z)                  # a_l = g_l(z_l)
            pre_activations.append(z)
            activations.append(a)

        trace = ForwardTrace(pre_activations, activations)
        self.last_trace = trace
        return trace

    #  Backpropagation
    def compute_gradients(self, trace: ForwardTrace, target: Any) -> Dict[str, np.ndarray]:
        """
        Gradients of the squared error sum_j (y_j - t_j)^2 for one traced sample.
        Returns {dW1, db1, ..., dWL, dbL}; parameters are not modified.
        """
        if trace.widths != self.config.layer_sizes:
            raise ShapeMismatchError(
                f"Trace widths {trace.widths} do not match architecture {self.config.layer_sizes}"
            )
        L = self.num_layers
        t = self._as_vector(target, self.config.layer_sizes[-1], "Target")
        grads = {}

        # Output layer: dL/dy = 2 (y - t), delta_L = dL/dy * g_out'(z_L)
        dL_dy = 2.0 * (trace.output - t)
        delta = dL_dy * self._layer_activations[L].derivative(trace.pre_activations[L])

        # Walk backward from L to 1; deltas always use the pre-update weights
        for l in range(L, 0, -1):
            grads[f"dW{l}"] = np.outer(delta, trace.activations[l - 1])   # delta_l[j] * a_{l-1}[k]
            grads[f"db{l}"] = delta                                       # Bias gradient is delta_l

            if l > 1:                                                      # Propagate to layer l-1
                dA_prev = np.dot(self.parameters[f"w{l}"].T, delta)        # W_l^T delta_l
                delta = dA_prev * self._layer_activations[l - 1].derivative(trace.pre_activations[l - 1])

        return grads

    #  Momentum SGD step
    def apply_gradients(self, grads: Dict[str, np.ndarray]):
        """
        Heavy-ball update for every weight and bias:
            v <- momentum * v + learning_rate * g
            p <- p - v
        """
        # Check every gradient before touching any parameter
        updates = []
        for key in self.parameters:                               # w1, b1, ..., wL, bL
            grad_key = ("dW" if key[0] == "w" else "db") + key[1:]
            if grad_key not in grads:
                raise ShapeMismatchError(f"Missing gradient {grad_key} for {key}")
            g = np.asarray(grads[grad_key], dtype=float)
            if g.shape != self.parameters[key].shape:
                raise ShapeMismatchError(f"Gradient for {key} has shape {g.shape}, expected {self.parameters[key].shape}")
            updates.append((key, g))

        lr = self.config.learning_rate
        mu = self.config.momentum
        for key, g in updates:
            self.velocity[key] = mu * self.velocity[key] + lr * g
            self.parameters[key] -= self.velocity[key]

    def backward(self, target: Any, trace: Optional[ForwardTrace] = None) -> Dict[str, np.ndarray]:
        """
        Backpropagate the error of one sample and update parameters in place.
        Uses the given trace, or the one left by the last forward() call.
        Returns the gradients that were applied.
        """
        if trace is None:
            trace = self.last_trace
        if trace is None:
            raise InvalidStateError("backward() called before any forward pass")
        grads = self.compute_gradients(trace, target)
        self.apply_gradients(grads)
        return grads

    #  Training
    def train_epoch(self, samples: Iterable[Sample]) -> float:
        """
        One shuffled pass of per-sample SGD over (input, target) pairs.
        Returns the mean squared error of the predictions made during the pass,
        each one taken before that sample's own update.
        """
        pairs = self._prepare_samples(samples)                    # Validate everything before any update
        if not pairs:
            raise ValueError("train_epoch() needs at least one sample")

        total = 0.0
        for i in self.rng.permutation(len(pairs)):                # New random order every epoch
            x, t = pairs[i]
            trace = self.forward(x)
            total += float(np.sum((trace.output - t) ** 2))       # Pre-update squared error
            self.backward(t, trace)

        self.epoch += 1
        loss = total / len(pairs)
        if not math.isfinite(loss):
            logger.warning("Non-finite loss at epoch %d (learning rate %g)", self.epoch, self.config.learning_rate)
        return loss

    def evaluate(self, samples: Iterable[Sample]) -> float:
        """Mean squared error over samples without updating parameters (overwrites last_trace)."""
        pairs = self._prepare_samples(samples)
        if not pairs:
            raise ValueError("evaluate() needs at least one sample")
        total = sum(float(np.sum((self.forward(x).output - t) ** 2)) for x, t in pairs)
        return total / len(pairs)

    def fit(
        self,
        samples: Iterable[Sample],
        epochs: int = 100,
        divergence_threshold: Optional[float] = None,
        progress: bool = False,
        log_every: int = 10,
    ) -> List[float]:
        """
        Train for several epochs and record the loss of each in self.costs.
        Stops early once the loss is non-finite or exceeds divergence_threshold.
        Returns the losses of the epochs run by this call.
        """
        pairs = self._prepare_samples(samples)
        history = []

        bar = tqdm(range(epochs), desc="Training", disable=not progress)
        for _ in bar:
            loss = self.train_epoch(pairs)
            self.costs.append(loss)
            history.append(loss)
            bar.set_postfix(loss=f"{loss:.4f}")

            if log_every and self.epoch % log_every == 0:
                logger.info(
                    "Epoch %4d | Loss %.6f | LR %.2e | Momentum %.2f",
                    self.epoch, loss, self.config.learning_rate, self.config.momentum,
                )

            if is_diverged(loss, divergence_threshold):
                logger.warning("Training diverged at epoch %d (loss=%s), stopping", self.epoch, loss)
                break

        bar.close()
        return history

    #  Prediction & parameters
    def predict(self, inputs: Iterable[Any]) -> np.ndarray:
        """
        Forward every input. Returns shape (m,) for a width-1 output layer, else (m, nL).
        Only the last input's trace stays cached.
        """
        n_out = self.config.layer_sizes[-1]
        outputs = [self.forward(x).output for x in inputs]
        if not outputs:
            return np.empty((0,) if n_out == 1 else (0, n_out))
        result = np.array(outputs)
        return result.ravel() if n_out == 1 else result

    def get_parameters(self) -> Parameters:
        L = self.num_layers
        return Parameters(
            weights=[self.parameters[f"w{l}"].copy() for l in range(1, L + 1)],
            biases=[self.parameters[f"b{l}"].copy() for l in range(1, L + 1)],
        )

    def set_learning_rate(self, value: float):
        self.config.learning_rate = check_learning_rate(value)

    def set_momentum(self, value: float):
        self.config.momentum = check_momentum(value)

    #  Lifecycle
    def reset(self):
        """Fresh parameters, zero momentum and epoch; configuration unchanged."""
        self.initialize_parameters()
        self.epoch = 0
        self.costs = []
        self.last_trace = None
        logger.debug("Network reset: %s", self.architecture)

    def reconfigure(self, config: Optional[ConfigLike] = None, **changes):
        """
        Replace the configuration (optionally only some fields) and reinitialize.
        An invalid configuration raises before anything is modified.
        """
        base = self.config if config is None else _to_config(config)
        new_config = base.replace(**changes)                      # Validates
        self.config = new_config
        self._resolve_activations()
        self.reset()
        logger.info("Network reconfigured: %s", self.config.to_dict())

    #  Introspection
    def _check_neuron(self, layer: int, index: int):
        sizes = self.config.layer_sizes
        if not 0 <= layer < len(sizes):
            raise InvalidStateError(f"Layer {layer} out of range (0..{len(sizes) - 1})")
        if not 0 <= index < sizes[layer]:
            raise InvalidStateError(f"Neuron {index} out of range for layer {layer} of size {sizes[layer]}")

    def neuron_info(self, layer: int, index: int) -> NeuronInfo:
        """
        Describe one neuron from the current parameters and the last forward trace.
        Never runs a forward pass; activation values are 0.0 until one has happened.
        """
        self._check_neuron(layer, index)
        trace = self.last_trace
        pre = post = 0.0
        if trace is not None:
            pre = float(trace.pre_activations[layer][index])
            post = float(trace.activations[layer][index])

        if layer == 0:
            return NeuronInfo(
                layer=0,
                index=index,
                layer_type="input",
                weights=np.empty(0),
                bias=0.0,
                activation=Activation.IDENTITY,
                pre_activation=pre,
                post_activation=post,
                dominant_input_index=None,
            )

        is_output = layer == self.num_layers
        weights = self.parameters[f"w{layer}"][index].copy()
        return NeuronInfo(
            layer=layer,
            index=index,
            layer_type="output" if is_output else "hidden",
            weights=weights,
            bias=float(self.parameters[f"b{layer}"][index]),
            activation=self._layer_activations[layer],
            pre_activation=pre,
            post_activation=post,
            dominant_input_index=int(np.argmax(np.abs(weights))),
            layer_number=None if is_output else layer,
        )

    def neuron_pattern(
        self, layer: int, index: int, inputs: Optional[Sequence[Any]] = None
    ) -> List[Tuple[Any, float]]:
        """
        Activation of one neuron across a sweep of inputs, as (input, activation) pairs.
        Runs a forward pass per input, so last_trace ends up holding the final one.
        """
        self._check_neuron(layer, index)
        if inputs is None:
            inputs = sweep_range()
        points = []
        for x in inputs:
            trace = self.forward(x)
            key = float(x) if np.ndim(x) == 0 else np.array(x, dtype=float)
            points.append((key, float(trace.activations[layer][index])))
        return points

    def snapshot(self, samples: Optional[Iterable[Sample]] = None) -> Dict[str, Any]:
        """
        JSON-ready view of the network for a visualizer.
        With samples, also reports their clean loss; the layer values then
        belong to the last sample evaluated.
        """
        state: Dict[str, Any] = {}
        if samples is not None:
            state["loss"] = self.evaluate(samples)

        trace = self.last_trace
        if trace is not None:
            layers = [
                {"pre_activation": z.tolist(), "activation": a.tolist()}
                for z, a in zip(trace.pre_activations, trace.activations)
            ]
        else:
            layers = [
                {"pre_activation": [0.0] * n, "activation": [0.0] * n}
                for n in self.config.layer_sizes
            ]

        params = self.get_parameters()
        state.update(
            weights=[w.tolist() for w in params.weights],
            biases=[b.tolist() for b in params.biases],
            layers=layers,
            epoch=self.epoch,
            config=self.config.to_dict(),
        )
        return state


def _to_config(config: Optional[ConfigLike]) -> NetworkConfig:
    if config is None:
        return NetworkConfig()
    if isinstance(config, NetworkConfig):
        return config.replace()
    return NetworkConfig.from_dict(config)


def create(config: Optional[ConfigLike] = None, seed: Optional[int] = None) -> NeuralNetwork:
    """Build a network from a NetworkConfig or a plain dict."""
    return NeuralNetwork(config, seed=seed)
