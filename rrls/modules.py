"""Streaming modules: the recursive ridge estimator loop and the standalone
random-feature mapper stage.

Both follow the same life cycle:

    CONFIGURED -> (PRETRAINED) -> RUNNING -> CLOSING -> CLOSED

run_module() calls init(), then update_module() until it returns False or
a stop is requested (rpc 'quit' or stop()), then interrupts and closes all
ports. The stop flag is a threading.Event shared with the rpc thread; it is
the only mutable state the two threads have in common.
"""
from __future__ import annotations

import enum
import logging
import threading

import numpy as np

from .RRLS_batch import load_pretraining
from .RRLS_main import RecursiveRidge
from .config import MapperConfig, RRLSConfig
from .errors import DimensionMismatch, PretrainLoadFailed
from .performance import PerformanceTracker
from .ports import BufferedPort, RpcPort

logger = logging.getLogger(__name__)

HELP_REPLY = ["many", "Available commands are:", "help", "quit"]
QUIT_REPLY = ["Quitting."]
INVALID_REPLY = ["Invalid command, type [help] for a list of accepted commands."]


class ModuleState(enum.Enum):
    CONFIGURED = "configured"
    PRETRAINED = "pretrained"
    RUNNING = "running"
    CLOSING = "closing"
    CLOSED = "closed"


class StreamModule:
    """Base class: ports, rpc command handling and the run loop."""

    def __init__(self, config):
        self.config = config
        self.name = config.name
        self.state = ModuleState.CONFIGURED
        self._stop = threading.Event()
        self.rpc_port = RpcPort(self.port_name("rpc:i"))
        self._ports = []

    def port_name(self, suffix):
        return f"/{self.name}/{suffix}"

    def _open_port(self, suffix):
        port = BufferedPort(self.port_name(suffix), maxsize=self.config.queue_size).open()
        self._ports.append(port)
        return port

    # -------------------------------- rpc --------------------------------
    def respond(self, command):
        """Handle one rpc command; returns (reply, keep_running)."""
        received = str(command[0]) if command else ""
        if received == "help":
            return list(HELP_REPLY), True
        if received == "quit":
            self.stop()
            return list(QUIT_REPLY), False
        return list(INVALID_REPLY), True

    # -------------------------------- life cycle --------------------------------
    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def stop(self):
        """Request the CLOSING transition; unblocks any pending port wait."""
        if not self._stop.is_set():
            self._stop.set()
            self.interrupt_module()

    def init(self):
        pass

    def update_module(self) -> bool:
        raise NotImplementedError

    def interrupt_module(self):
        for port in self._ports:
            port.interrupt()
        self.rpc_port.interrupt()

    def close(self):
        for port in self._ports:
            port.close()
        self.rpc_port.close()

    def run_module(self):
        self.rpc_port.open()
        self.rpc_port.attach(self.respond)
        try:
            self.init()
            self.state = ModuleState.RUNNING
            while not self._stop.is_set():
                if not self.update_module():
                    break
        except Exception:
            logger.exception("%s stopped on an unhandled error", self.name)
            raise
        finally:
            self.state = ModuleState.CLOSING
            self._stop.set()
            self.interrupt_module()
            self.close()
            self.state = ModuleState.CLOSED
        return self

    def start(self) -> threading.Thread:
        """Run the module on a background thread."""
        th = threading.Thread(target=self.run_module, name=self.name, daemon=True)
        th.start()
        return th


class RRLSEstimatorModule(StreamModule):
    """Online test-then-train loop over /<name>/vec:i samples.

    Each message holds d_in feature values followed by t target values. The
    prediction is written to /<name>/pred:o and the running performance to
    /<name>/perf:o before the sample is absorbed into the estimator.
    """

    def __init__(self, config: RRLSConfig):
        super().__init__(config)
        self.d_in = config.d_in
        self.t = config.t
        self.mapper = config.build_mapper()
        self.d = config.feature_dim
        self.estimator = RecursiveRidge(self.d, self.t, config.lam)
        self.variance = np.ones(self.t)
        self.tracker = PerformanceTracker(self.variance, perf=config.perf)
        self.update_count = 0
        self.dropped = 0

        self.in_vec = self._open_port("vec:i")
        self.pred = self._open_port("pred:o")
        self.perf = self._open_port("perf:o")
        self._log_configuration()

    def _log_configuration(self):
        cfg = self.config
        logger.info("-------------------------")
        logger.info("Configuration parameters:")
        logger.info("d_in = %d, d = %d, t = %d, lambda = %g", self.d_in, self.d, self.t, cfg.lam)
        if self.mapper is not None:
            logger.info("mapping = %s, numRF = %d", self.mapper.mapping, self.mapper.num_rf)
        logger.info("perf = %s", self.tracker.perf)
        if cfg.pretrain:
            logger.info("Pretraining requested: file %s, %d samples", cfg.pretrain_file, cfg.n_pretr)
        logger.info("-------------------------")

    def init(self):
        cfg = self.config
        if not cfg.pretrain:
            return
        path = cfg.resolve_pretrain_path()
        try:
            result = load_pretraining(path, cfg.n_pretr, self.d_in, self.t, cfg.lam,
                                      mapper=self.mapper)
        except PretrainLoadFailed as e:
            if cfg.pretrain_fatal:
                raise
            logger.warning("Pretraining failed (%s); starting from an empty model with unit variances", e)
            return
        self.estimator = RecursiveRidge.from_state(result.state, cfg.lam, n_updates=result.n)
        self.variance = result.variance
        self.tracker = PerformanceTracker(self.variance, perf=self.tracker.perf)
        self.state = ModuleState.PRETRAINED

    def split_sample(self, message):
        vec = np.asarray(message, dtype=np.float64).reshape(-1)
        if vec.shape[0] != self.d_in + self.t:
            raise DimensionMismatch('input sample', self.d_in + self.t, vec.shape[0])
        if not np.all(np.isfinite(vec)):
            raise ValueError(f"input sample contains non-finite values: {vec}")
        return vec[:self.d_in], vec[self.d_in:]

    def features(self, x):
        phi = self.mapper.map(x) if self.mapper is not None else x
        if not np.all(np.isfinite(phi)):
            raise ValueError("mapped features contain non-finite values")
        return phi

    def _test_then_train(self, phi, y, emit):
        yhat = self.estimator.predict(phi)
        if emit:
            if not self.pred.write(yhat.tolist()):
                logger.debug("%s interrupted, prediction not sent", self.pred.name)
            elif self.config.verbose:
                logger.debug("Sending prediction: %s", yhat)

        nmse = self.tracker.score(yhat, y)
        if emit:
            self.perf.write(nmse.tolist())
            if self.config.verbose:
                logger.debug("Sending %s: %s", self.tracker.perf, nmse)

        self.estimator.update(phi, y)
        self.update_count += 1
        if self.config.verbose:
            logger.debug("Update %d completed", self.update_count)
        return yhat, nmse

    def process(self, message):
        """One synchronous test-then-train step; returns (prediction, performance)."""
        x, y = self.split_sample(message)
        return self._test_then_train(self.features(x), y, emit=False)

    def update_module(self) -> bool:
        if self.config.verbose:
            logger.debug("Expecting input vector")
        message = self.in_vec.read()
        if message is None:
            return False
        try:
            x, y = self.split_sample(message)
            phi = self.features(x)
        except (DimensionMismatch, ValueError, TypeError) as e:
            self.dropped += 1
            logger.warning("Dropping malformed sample: %s", e)
            return True
        self._test_then_train(phi, y, emit=True)
        return True


class RFMapperModule(StreamModule):
    """Standalone feature-mapping stage: /<name>/features:i -> /<name>/features:o.

    The first d_in values of each message are mapped; any trailing values
    (targets) are forwarded unchanged after the mapped features.
    """

    def __init__(self, config: MapperConfig):
        super().__init__(config)
        self.mapper = config.build_mapper()
        self.d_in = config.d_in
        self.t = config.t
        self.dropped = 0
        self.in_features = self._open_port("features:i")
        self.out_features = self._open_port("features:o")
        logger.info("Mapper stage %s: %r", self.name, self.mapper)

    def process(self, message):
        vec = np.asarray(message, dtype=np.float64).reshape(-1)
        if vec.shape[0] != self.d_in + self.t:
            raise DimensionMismatch('input sample', self.d_in + self.t, vec.shape[0])
        return np.concatenate([self.mapper.map(vec[:self.d_in]), vec[self.d_in:]])

    def update_module(self) -> bool:
        message = self.in_features.read()
        if message is None:
            return False
        try:
            out = self.process(message)
        except (DimensionMismatch, ValueError, TypeError) as e:
            self.dropped += 1
            logger.warning("Dropping malformed sample: %s", e)
            return True
        return self.out_features.write(out.tolist())


__all__ = ["ModuleState", "StreamModule", "RRLSEstimatorModule", "RFMapperModule",
           "HELP_REPLY", "QUIT_REPLY", "INVALID_REPLY"]
