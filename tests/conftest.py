import logging

import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg")


@pytest.fixture(autouse=True)
def setup_logging():
    """Set up logging for tests."""
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Suppress excessive logging during tests
    logging.getLogger("nnet").setLevel(logging.CRITICAL)

    yield

    # Reset logging after test
    logging.getLogger("nnet").setLevel(logging.NOTSET)


@pytest.fixture
def identity_samples():
    """(x, x) for x in -2..2."""
    return [(float(x), float(x)) for x in (-2, -1, 0, 1, 2)]


@pytest.fixture
def sine_samples():
    """20 noise-free sine samples on [-3, 3]."""
    xs = np.linspace(-3.0, 3.0, 20)
    return [(float(x), float(np.sin(x))) for x in xs]
