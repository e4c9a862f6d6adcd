"""
Sensor Client - 输出流客户端与监听器

- SensorClient: 持有 ConnectionSession，把消息和错误分发给监听器
- MessageListener: 监听器基类（消息 + 错误通道）
- RecorderListener: 把消息交给录制器，连接类错误触发重连
"""

import logging
import threading
from enum import Enum
from typing import Any, List, Optional

from ..errors import ConnectionInitError
from ..protocol.message import MessageCodec
from ..replay.recorder import MessageRecorder
from .session import ConnectionMetadata, ConnectionSession, ConnectionStatus

logger = logging.getLogger(__name__)

OUTPUT_STREAM_PATH = "/output-stream"


class ListenerError(str, Enum):
    """监听器错误类别"""

    OUTPUT_MESSAGE_CONNECTION = "output_message_connection"
    POINT_RESULT_CONNECTION = "point_result_connection"
    OUTPUT_BUFFER_OVERFLOW = "output_buffer_overflow"
    INVALID_MESSAGE = "invalid_message"
    UNKNOWN = "unknown"


# 需要重连的错误类别
RECONNECT_ERRORS = frozenset(
    {
        ListenerError.OUTPUT_MESSAGE_CONNECTION,
        ListenerError.POINT_RESULT_CONNECTION,
        ListenerError.OUTPUT_BUFFER_OVERFLOW,
    }
)


class MessageListener:
    """监听器基类"""

    def on_error(self, error: ListenerError, reason: str) -> None:
        logger.error(f"[{error.value}] {reason}")

    def on_output_message(self, message: Any) -> None:
        pass


class SensorClient:
    """
    输出流客户端

    使用示例：
    ```python
    client = SensorClient("ws://192.168.0.103:5050", JsonMessageCodec())
    client.subscribe_listener(RecorderListener(client, recorder))
    ...
    client.close()
    ```
    """

    def __init__(
        self,
        address: str,
        codec: MessageCodec,
        session: Optional[ConnectionSession] = None,
        reconnect_delay: float = 1.0,
        reconnect_delay_max: float = 30.0,
    ):
        self.address = address.rstrip("/")
        self.session = session or ConnectionSession(codec)
        self.reconnect_delay = reconnect_delay
        self.reconnect_delay_max = reconnect_delay_max

        self._listeners: List[MessageListener] = []
        self._lock = threading.Lock()
        self._current_delay = reconnect_delay
        self._reconnect_timer: Optional[threading.Timer] = None
        self._closed = False

        self.session.subscribe(self._on_message)
        self.session.on_status(self._on_status)

    @property
    def uri(self) -> str:
        if self.address.endswith(OUTPUT_STREAM_PATH):
            return self.address
        return self.address + OUTPUT_STREAM_PATH

    @property
    def connected(self) -> bool:
        return self.session.is_open

    def subscribe_listener(self, listener: MessageListener) -> bool:
        """注册监听器；第一个监听器注册时发起连接"""
        with self._lock:
            if listener in self._listeners:
                return True
            self._listeners.append(listener)
            first = len(self._listeners) == 1

        if first and self.session.metadata is None:
            return self._connect()
        return True

    def unsubscribe_listener(self, listener: MessageListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def reconnect(self) -> None:
        """按退避间隔重新连接"""
        if self._closed:
            return
        with self._lock:
            if self._reconnect_timer is not None:
                return
            delay = self._current_delay
            self._current_delay = min(self._current_delay * 2, self.reconnect_delay_max)
            self._reconnect_timer = threading.Timer(delay, self._reconnect_now)
            self._reconnect_timer.daemon = True
            self._reconnect_timer.start()
        logger.info(f"Reconnecting in {delay:.1f}s")

    def close(self) -> None:
        """关闭客户端并停止连接线程"""
        self._closed = True
        with self._lock:
            timer = self._reconnect_timer
            self._reconnect_timer = None
        if timer is not None:
            timer.cancel()
        self.session.shutdown()

    def _reconnect_now(self) -> None:
        with self._lock:
            self._reconnect_timer = None
        if not self._closed:
            self._connect()

    def _connect(self) -> bool:
        try:
            self.session.connect(self.uri)
        except ConnectionInitError as e:
            self._report(ListenerError.OUTPUT_MESSAGE_CONNECTION, f"connect failed: {e}")
            return False
        return True

    def _on_message(self, message: Any) -> None:
        for listener in self._snapshot():
            try:
                listener.on_output_message(message)
            except Exception as e:
                logger.error(f"Listener error: {e}")

    def _on_status(self, metadata: ConnectionMetadata) -> None:
        if metadata.status == ConnectionStatus.OPEN:
            self._current_delay = self.reconnect_delay
        elif metadata.status.is_terminal and not self._closed:
            self._report(
                ListenerError.OUTPUT_MESSAGE_CONNECTION,
                f"output message connection {metadata.status.value.lower()}: {metadata.error_reason}",
            )

    def _report(self, error: ListenerError, reason: str) -> None:
        for listener in self._snapshot():
            try:
                listener.on_error(error, reason)
            except Exception as e:
                logger.error(f"Listener error: {e}")

    def _snapshot(self) -> List[MessageListener]:
        with self._lock:
            return list(self._listeners)


class RecorderListener(MessageListener):
    """把输出消息写入录制器；连接类错误触发重连"""

    def __init__(self, client: SensorClient, recorder: MessageRecorder):
        self.client = client
        self.recorder = recorder

    def on_error(self, error: ListenerError, reason: str) -> None:
        logger.error(reason)
        if error in RECONNECT_ERRORS:
            self.client.reconnect()

    def on_output_message(self, message: Any) -> None:
        self.recorder.record(message)
