"""
Example usage: fit a noisy sine wave and plot the learning curve.

    python -m nnet
"""

import logging

import numpy as np

from .config import NetworkConfig
from .datasets import sine_dataset
from .network import NeuralNetwork
from .plotting import plot_cost, plot_neuron_pattern


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    data = sine_dataset(num_points=200, noise=0.2, rng=np.random.default_rng(0))
    samples = data.samples()

    config = NetworkConfig.from_hidden_layers(
        [8, 8],
        hidden_activation="tanh",                       # Hidden activation: "tanh", "relu", "sigmoid", "identity"
        output_activation="identity",                   # Linear output for regression
        learning_rate=0.01,
        momentum=0.9,
    )
    nn = NeuralNetwork(config, seed=42)

    print(f"Initial loss: {nn.evaluate(samples):.4f}")
    nn.fit(samples, epochs=300, divergence_threshold=1e3, progress=True, log_every=50)
    print(f"Final loss:   {nn.evaluate(samples):.4f} after {nn.epoch} epochs")

    info = nn.neuron_info(1, 0)
    print(f"Neuron (1, 0): bias={info.bias:+.3f}, strongest input={info.dominant_input_index}, pattern={info.pattern}")

    plot_cost(nn.costs, lr_used=config.learning_rate, show=True)
    plot_neuron_pattern(nn.neuron_pattern(1, 0), title="Hidden layer 1, neuron 1", show=True)


if __name__ == "__main__":
    main()
