"""
Background execution host for a single NeuralNetwork.

The host owns exactly one network and processes commands strictly in arrival
order on its own thread. Commands and replies cross the thread boundary as
JSON strings, so the caller never touches the network directly.

Commands                                        Replies
    {"type": "init", "config": {...}}               {"type": "ready"}
    {"type": "train", "epochs": n,                  {"type": "result", "loss", "epoch",
     "data_x": [...], "data_y": [...]}               "predictions", "weights", "biases",
                                                     "activations", "stopped"}
    {"type": "predict", "data_x": [...]}            {"type": "predictions", "predictions"}
    {"type": "reset", "config": {...}?}             {"type": "reset_done"}
    any failure                                     {"type": "error", "message"}

Cancellation is cooperative: stop() is not queued. Every command is stamped
with the number of stop() calls made before it was posted; a train command
skips its remaining epochs once a later stop() has happened. The epoch in
progress always completes, and commands posted after the stop run normally.
There are no timeouts; use get_result(timeout=...) to detect a stalled host.
"""

import json
import logging
import math
import numbers
import queue
import threading
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from .config import NetworkConfig
from .errors import InvalidStateError
from .network import NeuralNetwork

logger = logging.getLogger("nnet.worker")

_SHUTDOWN = None
_GENERATION = "stop_generation"


class TrainingWorker:
    def __init__(self, seed: Optional[int] = None, name: str = "nnet-worker"):
        self.seed = seed
        self.name = name
        self.network: Optional[NeuralNetwork] = None
        self._inbox: "queue.Queue[Optional[str]]" = queue.Queue()
        self._outbox: "queue.Queue[str]" = queue.Queue()
        self._stop_lock = threading.Lock()
        self._stop_generation = 0                                 # Number of stop() calls so far
        self._thread: Optional[threading.Thread] = None
        self._handlers = {
            "init": self._handle_init,
            "train": self._handle_train,
            "predict": self._handle_predict,
            "reset": self._handle_reset,
        }

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "TrainingWorker":
        if not self.running:
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
            logger.debug("Worker %s started", self.name)
        return self

    def shutdown(self, timeout: Optional[float] = None):
        """Cancel training, let queued commands drain, and join the thread."""
        self.stop()
        if self.running:
            self._inbox.put(_SHUTDOWN)
            self._thread.join(timeout)
            logger.debug("Worker %s stopped", self.name)

    #  Caller side
    def post(self, message: Dict[str, Any]):
        """Queue a command, stamped with the current stop generation."""
        with self._stop_lock:
            stamped = dict(message, **{_GENERATION: self._stop_generation})
        self._inbox.put(json.dumps(stamped))

    def init(self, config: Union[NetworkConfig, Dict[str, Any], None] = None):
        if isinstance(config, NetworkConfig):
            config = config.to_dict()
        self.post({"type": "init", "config": config})

    def train(self, epochs: int, data_x: Sequence[Any], data_y: Sequence[Any]):
        self.post({
            "type": "train",
            "epochs": epochs,
            "data_x": np.asarray(data_x, dtype=float).tolist(),
            "data_y": np.asarray(data_y, dtype=float).tolist(),
        })

    def predict(self, data_x: Sequence[Any]):
        self.post({"type": "predict", "data_x": np.asarray(data_x, dtype=float).tolist()})

    def reset(self, config: Union[NetworkConfig, Dict[str, Any], None] = None):
        if isinstance(config, NetworkConfig):
            config = config.to_dict()
        self.post({"type": "reset", "config": config})

    def stop(self):
        """Finish the current epoch, then skip the remaining epochs of every train command posted so far."""
        with self._stop_lock:
            self._stop_generation += 1

    def get_result(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Next reply; raises queue.Empty if none arrives within timeout."""
        return json.loads(self._outbox.get(timeout=timeout))

    #  Host side
    def _run(self):
        while True:
            raw = self._inbox.get()
            if raw is _SHUTDOWN:
                break
            reply = self.handle(json.loads(raw))
            self._outbox.put(json.dumps(reply))

    def handle(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Execute one decoded command and return its reply."""
        kind = message.get("type")
        handler = self._handlers.get(kind)
        if handler is None:
            return {"type": "error", "message": f"Unknown command type: {kind!r}"}
        try:
            return handler(message)
        except Exception as e:
            # The host must keep serving; every failure becomes an error reply
            logger.exception("Command %r failed", kind)
            return {"type": "error", "message": f"{type(e).__name__}: {e}"}

    def _stop_requested_since(self, generation: Optional[int]) -> bool:
        if generation is None:
            return False
        with self._stop_lock:
            return self._stop_generation > generation

    def _require_network(self) -> NeuralNetwork:
        if self.network is None:
            raise InvalidStateError("Network not initialized; send an init command first")
        return self.network

    def _handle_init(self, message):
        self.network = NeuralNetwork(NetworkConfig.from_dict(message.get("config")), seed=self.seed)
        logger.info("Worker network initialized: %s", self.network.architecture)
        return {"type": "ready"}

    def _handle_train(self, message):
        network = self._require_network()
        epochs = _check_epochs(message.get("epochs"))
        data_x, data_y = message["data_x"], message["data_y"]
        if len(data_x) != len(data_y):
            raise ValueError(f"data_x has {len(data_x)} samples but data_y has {len(data_y)}")
        samples = list(zip(data_x, data_y))
        generation = message.get(_GENERATION)

        loss = None
        stopped = False
        for _ in range(epochs):
            if self._stop_requested_since(generation):
                stopped = True
                break
            loss = network.train_epoch(samples)

        predictions = network.predict(data_x).tolist()
        state = network.snapshot()
        return {
            "type": "result",
            "loss": loss,
            "epoch": network.epoch,
            "predictions": predictions,
            "weights": state["weights"],
            "biases": state["biases"],
            "activations": state["layers"],
            "stopped": stopped,
        }

    def _handle_predict(self, message):
        network = self._require_network()
        return {"type": "predictions", "predictions": network.predict(message["data_x"]).tolist()}

    def _handle_reset(self, message):
        config = message.get("config")
        if config is not None:
            if self.network is None:
                self.network = NeuralNetwork(NetworkConfig.from_dict(config), seed=self.seed)
            else:
                self.network.reconfigure(NetworkConfig.from_dict(config))
        else:
            self._require_network().reset()
        return {"type": "reset_done"}


def _check_epochs(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValueError(f"epochs must be a non-negative integer, got {value!r}")
    if not math.isfinite(value) or value < 0 or value != int(value):
        raise ValueError(f"epochs must be a non-negative integer, got {value!r}")
    return int(value)
