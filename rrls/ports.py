"""In-process ports used by the streaming modules.

BufferedPort: bounded queue of messages. read() blocks until a message is
available, write() blocks while the queue is full; both return promptly once
the port is interrupted (read -> None, write -> False).

RpcPort: request/reply command channel served on its own daemon thread by a
handler(command) -> (reply, keep_running) callable.
"""
from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

POLL_PERIOD_S = 0.05


class BufferedPort:
    def __init__(self, name: str, maxsize: int = 64):
        self.name = name
        self._q: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._interrupted = threading.Event()
        self._closed = False

    def open(self):
        logger.info("%s opened", self.name)
        return self

    @property
    def interrupted(self) -> bool:
        return self._interrupted.is_set()

    def read(self) -> Optional[Any]:
        """Blocking read with no timeout; returns None once interrupted."""
        while not self._interrupted.is_set():
            try:
                return self._q.get(timeout=POLL_PERIOD_S)
            except queue.Empty:
                continue
        return None

    def write(self, message) -> bool:
        """Blocking write; returns False if the port was interrupted first."""
        while not self._interrupted.is_set():
            try:
                self._q.put(message, timeout=POLL_PERIOD_S)
                return True
            except queue.Full:
                continue
        return False

    def pending(self) -> int:
        return self._q.qsize()

    def drain(self) -> List[Any]:
        items = []
        while True:
            try:
                items.append(self._q.get_nowait())
            except queue.Empty:
                return items

    def interrupt(self):
        self._interrupted.set()
        logger.info("%s interrupted", self.name)

    def close(self):
        if not self._closed:
            self._interrupted.set()
            self._closed = True
            logger.info("%s closed", self.name)


class RpcPort:
    def __init__(self, name: str):
        self.name = name
        self._requests: "queue.Queue[Any]" = queue.Queue()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._handler: Optional[Callable[[List[str]], Tuple[List[Any], bool]]] = None

    def open(self):
        logger.info("%s opened", self.name)
        return self

    def attach(self, handler):
        """Serve requests with handler on a daemon thread."""
        self._handler = handler
        self._thread = threading.Thread(target=self._serve, name=self.name, daemon=True)
        self._thread.start()

    def _serve(self):
        while not self._stop.is_set():
            try:
                command, reply_q = self._requests.get(timeout=POLL_PERIOD_S)
            except queue.Empty:
                continue
            reply, keep_running = self._handler(command)
            reply_q.put(reply)
            if not keep_running:
                break

    def request(self, command, timeout: Optional[float] = 5.0) -> Optional[List[Any]]:
        """Send a command (str or list of tokens) and wait for the reply."""
        if isinstance(command, str):
            command = command.split()
        reply_q: "queue.Queue[Any]" = queue.Queue(maxsize=1)
        self._requests.put((list(command), reply_q))
        try:
            return reply_q.get(timeout=timeout)
        except queue.Empty:
            return None

    def interrupt(self):
        self._stop.set()
        logger.info("%s interrupted", self.name)

    def close(self):
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        logger.info("%s closed", self.name)


__all__ = ["BufferedPort", "RpcPort", "POLL_PERIOD_S"]
