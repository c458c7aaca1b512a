import json
import queue

import numpy as np
import pytest

from nnet import NetworkConfig, NeuralNetwork, TrainingWorker

TIMEOUT = 30.0


@pytest.fixture
def worker():
    w = TrainingWorker(seed=0).start()
    yield w
    w.shutdown(timeout=TIMEOUT)


@pytest.fixture
def data(sine_samples):
    xs = [x for x, _ in sine_samples]
    ys = [y for _, y in sine_samples]
    return xs, ys


def test_init_train_predict_roundtrip(worker, data):
    xs, ys = data
    worker.init({"hidden_layers": [4], "learning_rate": 0.05, "momentum": 0.9})
    assert worker.get_result(TIMEOUT) == {"type": "ready"}

    worker.train(5, xs, ys)
    result = worker.get_result(TIMEOUT)
    assert result["type"] == "result"
    assert result["epoch"] == 5
    assert result["stopped"] is False
    assert np.isfinite(result["loss"])
    assert len(result["predictions"]) == len(xs)
    assert [np.shape(w) for w in result["weights"]] == [(4, 1), (1, 4)]
    assert [len(layer["activation"]) for layer in result["activations"]] == [1, 4, 1]
    assert result["activations"][0]["activation"] == [xs[-1]]

    worker.predict([0.0, 1.0])
    reply = worker.get_result(TIMEOUT)
    assert reply["type"] == "predictions"
    assert len(reply["predictions"]) == 2


def test_results_match_a_direct_network(worker, data):
    xs, ys = data
    config = NetworkConfig.from_hidden_layers([3], learning_rate=0.02)
    worker.init(config)
    worker.get_result(TIMEOUT)
    worker.train(3, xs, ys)
    result = worker.get_result(TIMEOUT)

    direct = NeuralNetwork(config, seed=0)
    for _ in range(3):
        loss = direct.train_epoch(list(zip(xs, ys)))
    assert result["loss"] == pytest.approx(loss)
    np.testing.assert_allclose(result["predictions"], direct.predict(xs))


def test_commands_processed_in_order(worker, data):
    xs, ys = data
    worker.init({"hidden_layers": [2]})
    worker.train(2, xs, ys)
    worker.train(3, xs, ys)
    worker.reset()
    worker.predict([0.5])

    replies = [worker.get_result(TIMEOUT) for _ in range(5)]
    assert [r["type"] for r in replies] == ["ready", "result", "result", "reset_done", "predictions"]
    assert replies[1]["epoch"] == 2
    assert replies[2]["epoch"] == 5
    assert worker.network.epoch == 0


def test_reset_with_config_reconfigures(worker):
    worker.init({"hidden_layers": [2]})
    worker.reset({"hidden_layers": [5, 5], "hidden_activation": "relu"})
    assert worker.get_result(TIMEOUT)["type"] == "ready"
    assert worker.get_result(TIMEOUT)["type"] == "reset_done"
    assert worker.network.architecture == [1, 5, 5, 1]


def test_errors_become_replies(worker):
    worker.train(1, [0.0], [0.0])
    assert "not initialized" in worker.get_result(TIMEOUT)["message"]

    worker.init({"layer_sizes": [1]})
    reply = worker.get_result(TIMEOUT)
    assert reply["type"] == "error"

    worker.post({"type": "explode"})
    assert worker.get_result(TIMEOUT)["type"] == "error"

    worker.init({"hidden_layers": [2]})
    worker.get_result(TIMEOUT)
    worker.train(1, [0.0, 1.0], [0.0])
    assert worker.get_result(TIMEOUT)["type"] == "error"

    # the host keeps serving after failures
    worker.predict([0.0])
    assert worker.get_result(TIMEOUT)["type"] == "predictions"


def test_stop_skips_remaining_epochs(data):
    xs, ys = data
    w = TrainingWorker(seed=0)
    w.init({"hidden_layers": [2]})
    assert w.handle(json.loads(w._inbox.get()))["type"] == "ready"

    w.train(50, xs, ys)
    w.stop()
    w.train(2, xs, ys)

    # the stop only applies to commands posted before it
    result = w.handle(json.loads(w._inbox.get()))
    assert result["stopped"] is True
    assert result["epoch"] == 0
    assert result["loss"] is None

    result = w.handle(json.loads(w._inbox.get()))
    assert result["stopped"] is False
    assert result["epoch"] == 2


def test_stop_then_train_on_running_host(worker, data):
    xs, ys = data
    worker.init({"hidden_layers": [4]})
    worker.get_result(TIMEOUT)

    worker.train(1_000_000, xs, ys)
    worker.stop()
    worker.train(1, xs, ys)

    first = worker.get_result(TIMEOUT)
    second = worker.get_result(TIMEOUT)
    assert first["stopped"] is True
    assert first["epoch"] < 1_000_000
    assert second["stopped"] is False
    assert second["epoch"] == first["epoch"] + 1


@pytest.mark.parametrize("epochs", [float("inf"), float("nan"), -1, 2.5, "3", True, None])
def test_invalid_epochs_become_error_replies(worker, data, epochs):
    xs, ys = data
    worker.init({"hidden_layers": [2]})
    worker.get_result(TIMEOUT)

    worker.post({"type": "train", "epochs": epochs, "data_x": xs, "data_y": ys})
    reply = worker.get_result(TIMEOUT)
    assert reply["type"] == "error"
    assert "epochs" in reply["message"]
    assert worker.network.epoch == 0

    worker.predict([0.0])
    assert worker.get_result(TIMEOUT)["type"] == "predictions"
    assert worker.running


def test_unexpected_failures_become_error_replies(worker, monkeypatch):
    worker.init({"hidden_layers": [2]})
    worker.get_result(TIMEOUT)

    def broken_predict(data_x):
        raise RuntimeError("boom")

    monkeypatch.setattr(worker.network, "predict", broken_predict)
    worker.predict([0.0])
    reply = worker.get_result(TIMEOUT)
    assert reply == {"type": "error", "message": "RuntimeError: boom"}

    monkeypatch.undo()
    worker.predict([0.0])
    assert worker.get_result(TIMEOUT)["type"] == "predictions"


def test_train_accepts_numpy_vector_targets(worker):
    xs = np.linspace(-1.0, 1.0, 6)
    ys = np.column_stack([np.sin(xs), np.cos(xs)])
    worker.init({"layer_sizes": [1, 3, 2]})
    worker.get_result(TIMEOUT)

    worker.train(2, xs, ys)
    result = worker.get_result(TIMEOUT)
    assert result["type"] == "result"
    assert result["epoch"] == 2
    assert np.shape(result["predictions"]) == (6, 2)

    worker.predict(xs[:2])
    assert np.shape(worker.get_result(TIMEOUT)["predictions"]) == (2, 2)


def test_get_result_times_out_when_idle(worker):
    with pytest.raises(queue.Empty):
        worker.get_result(timeout=0.05)


def test_context_manager_joins_thread():
    with TrainingWorker() as w:
        assert w.running
        w.init()
        assert w.get_result(TIMEOUT)["type"] == "ready"
    assert not w.running
