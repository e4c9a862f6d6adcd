"""
共享测试夹具

- 示例消息（tests/fixtures/sample_messages.json）
- FakeWebSocketApp：替代 websocket.WebSocketApp，无需网络
"""

import json
import queue
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from sensorlog.connection import session as session_module
from sensorlog.protocol.message import JsonMessageCodec, OutputMessage


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """轮询直到条件成立或超时"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class FakeSock:
    def __init__(self, headers: Optional[Dict[str, str]] = None):
        self.headers = headers

    def getheaders(self):
        return self.headers


class FakeWebSocketApp:
    """
    假的 WebSocketApp

    run_forever 在会话线程上依次执行注入的事件，close() 或服务端关闭后返回。
    """

    instances: List["FakeWebSocketApp"] = []

    def __init__(self, url, header=None, on_open=None, on_message=None, on_error=None, on_close=None):
        self.url = url
        self.header = header
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.sock = FakeSock({"server": "FakeSensor/1.0"})
        self.close_calls: List[dict] = []
        self.run_kwargs: Optional[dict] = None
        self.started = threading.Event()
        self.finished = threading.Event()
        self._events: "queue.Queue" = queue.Queue()
        FakeWebSocketApp.instances.append(self)

    def run_forever(self, **kwargs):
        self.run_kwargs = kwargs
        self.started.set()
        while True:
            event = self._events.get()
            if event is None:
                break
            event()
        self.finished.set()
        return False

    def close(self, **kwargs):
        self.close_calls.append(kwargs)
        self._events.put(None)

    # ---- 测试驱动的服务端事件（在会话线程上执行） ----

    def server_open(self):
        self._events.put(lambda: self.on_open(self))

    def server_message(self, data):
        self._events.put(lambda: self.on_message(self, data))

    def server_error(self, error):
        self._events.put(lambda: self.on_error(self, error))

    def server_fail(self, error):
        """握手失败：on_error 后事件循环退出"""
        self._events.put(lambda: self.on_error(self, error))
        self._events.put(None)

    def server_close(self, code=1000, reason="bye"):
        self._events.put(lambda: self.on_close(self, code, reason))
        self._events.put(None)

    def sync(self, timeout: float = 2.0) -> bool:
        """等待之前注入的事件全部执行完"""
        if self.finished.is_set():
            return True
        done = threading.Event()
        self._events.put(done.set)
        return wait_for(lambda: done.is_set() or self.finished.is_set(), timeout)


@pytest.fixture
def fake_ws(monkeypatch):
    """用 FakeWebSocketApp 替换 websocket.WebSocketApp"""
    FakeWebSocketApp.instances = []
    monkeypatch.setattr(session_module.websocket, "WebSocketApp", FakeWebSocketApp)
    return FakeWebSocketApp


@pytest.fixture
def sample_data():
    """加载示例消息"""
    fixtures_path = Path(__file__).parent / "fixtures" / "sample_messages.json"
    with open(fixtures_path, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def sample_messages(sample_data) -> List[OutputMessage]:
    return [OutputMessage.model_validate(item) for item in sample_data]


@pytest.fixture
def codec() -> JsonMessageCodec:
    return JsonMessageCodec(OutputMessage)
