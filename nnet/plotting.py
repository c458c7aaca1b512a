"""
Plotting helpers for training curves and neuron response patterns.
Each helper returns the figure; pass show=True to display it.
"""

from typing import Any, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np


def plot_cost(costs: Sequence[float], lr_used: float, show: bool = False):
    """
    Plot the training cost (mean squared error per epoch) over epochs.
    """
    fig, ax = plt.subplots(figsize=(8, 4))                               # Horizontal plot
    ax.plot(np.arange(1, len(costs) + 1), costs, lw=1)                   # Cost curve, epochs start at 1
    ax.set_title(f"Training Cost\nLearning rate: {lr_used}")
    ax.set_xlabel("Epoch")
    ax.set_ylabel("Cost (MSE)")
    if len(costs) and np.all(np.asarray(costs) > 0):
        ax.set_yscale("log")                                             # Loss spans orders of magnitude
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    if show:
        plt.show()
    return fig


def plot_neuron_pattern(points: Sequence[Tuple[Any, float]], title: str = "Neuron response", show: bool = False):
    """
    Plot the (input, activation) pairs returned by NeuralNetwork.neuron_pattern().
    Only scalar inputs can be drawn.
    """
    xs = [float(p) for p, _ in points]
    ys = [a for _, a in points]

    fig, ax = plt.subplots(figsize=(6, 3))
    ax.plot(xs, ys, lw=1.5)
    ax.axhline(0.0, color="gray", lw=0.5)                                # Zero line for sign of the response
    ax.set_title(title)
    ax.set_xlabel("Input")
    ax.set_ylabel("Activation")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    if show:
        plt.show()
    return fig
