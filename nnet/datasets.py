"""
Small synthetic regression dataset used by the demo and the tests.
"""

from typing import List, NamedTuple, Optional, Tuple

import numpy as np


class Dataset(NamedTuple):
    x: np.ndarray          # Inputs, evenly spaced
    y: np.ndarray          # Noisy targets
    y_true: np.ndarray     # Noise-free targets

    def samples(self) -> List[Tuple[float, float]]:
        """(input, target) pairs in the form expected by NeuralNetwork.train_epoch()."""
        return [(float(a), float(b)) for a, b in zip(self.x, self.y)]


def sine_dataset(
    num_points: int = 200,
    noise: float = 0.2,
    x_min: float = -6.0,
    x_max: float = 6.0,
    rng: Optional[np.random.Generator] = None,
) -> Dataset:
    """
    y = sin(x) + U(-noise, noise) on num_points evenly spaced x in [x_min, x_max].
    """
    if num_points < 2:
        raise ValueError(f"num_points must be at least 2, got {num_points}")
    rng = rng if rng is not None else np.random.default_rng()
    x = np.linspace(x_min, x_max, num_points)
    y_true = np.sin(x)
    y = y_true + rng.uniform(-noise, noise, size=num_points)
    return Dataset(x, y, y_true)
