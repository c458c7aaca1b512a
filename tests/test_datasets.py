import numpy as np
import pytest

from nnet.datasets import sine_dataset


def test_sine_dataset_without_noise():
    data = sine_dataset(num_points=11, noise=0.0, x_min=-1.0, x_max=1.0)
    np.testing.assert_allclose(data.x, np.linspace(-1, 1, 11))
    np.testing.assert_allclose(data.y, np.sin(data.x))
    np.testing.assert_allclose(data.y_true, data.y)


def test_sine_dataset_noise_is_bounded():
    data = sine_dataset(num_points=500, noise=0.2, rng=np.random.default_rng(1))
    assert np.abs(data.y - data.y_true).max() <= 0.2
    assert not np.allclose(data.y, data.y_true)


def test_samples_are_pairs():
    samples = sine_dataset(num_points=5, noise=0.0).samples()
    assert len(samples) == 5
    assert all(isinstance(x, float) and isinstance(y, float) for x, y in samples)


def test_sine_dataset_rejects_too_few_points():
    with pytest.raises(ValueError):
        sine_dataset(num_points=1)
