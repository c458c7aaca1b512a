import matplotlib.pyplot as plt

from nnet import NetworkConfig, NeuralNetwork
from nnet.plotting import plot_cost, plot_neuron_pattern


def test_plot_cost(sine_samples):
    net = NeuralNetwork(NetworkConfig.from_hidden_layers([3]), seed=0)
    net.fit(sine_samples, epochs=4)
    fig = plot_cost(net.costs, lr_used=net.config.learning_rate)
    ax = fig.axes[0]
    assert list(ax.lines[0].get_ydata()) == net.costs
    assert ax.get_xlabel() == "Epoch"
    plt.close(fig)


def test_plot_neuron_pattern():
    net = NeuralNetwork(NetworkConfig.from_hidden_layers([3]), seed=0)
    points = net.neuron_pattern(1, 0, inputs=[-1.0, 0.0, 1.0])
    fig = plot_neuron_pattern(points, title="neuron")
    ax = fig.axes[0]
    assert list(ax.lines[0].get_xdata()) == [-1.0, 0.0, 1.0]
    assert ax.get_title() == "neuron"
    plt.close(fig)
