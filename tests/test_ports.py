import threading
import time
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
from rrls.ports import BufferedPort, RpcPort


def test_read_returns_none_after_interrupt():
    port = BufferedPort("/t/vec:i").open()
    timer = threading.Timer(0.1, port.interrupt)
    timer.start()
    start = time.time()
    assert port.read() is None
    assert time.time() - start < 1.0
    assert port.interrupted


def test_messages_keep_order():
    port = BufferedPort("/t/vec:i", maxsize=4)
    for i in range(3):
        assert port.write([i])
    assert port.pending() == 3
    assert port.read() == [0]
    assert port.drain() == [[1], [2]]
    assert port.pending() == 0


def test_full_write_gives_up_after_interrupt():
    port = BufferedPort("/t/pred:o", maxsize=1)
    assert port.write([1.0])
    timer = threading.Timer(0.1, port.interrupt)
    timer.start()
    assert port.write([2.0]) is False
    port.close()
    assert port.write([3.0]) is False


def test_rpc_request_and_shutdown():
    port = RpcPort("/t/rpc:i").open()
    port.attach(lambda cmd: (["echo"] + cmd, cmd != ["stop"]))
    assert port.request("a b", timeout=1.0) == ["echo", "a", "b"]
    assert port.request(["stop"], timeout=1.0) == ["echo", "stop"]
    # server thread has exited; nobody answers
    assert port.request("again", timeout=0.2) is None
    port.close()
