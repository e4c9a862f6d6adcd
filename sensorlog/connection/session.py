"""
Connection Session - WebSocket 连接会话

在常驻后台线程上维护一条 WebSocket 连接：
- 生命周期状态机 Connecting -> {Open, Failed}, Open -> Closed
- 入站帧解码为消息后按订阅顺序分发
- 后台线程在实例生命周期内只启动一次，多次 connect/close 复用同一线程
"""

import logging
import os
import queue
import ssl
import threading
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

import websocket

from ..errors import ConnectionInitError, MessageDecodeError
from ..protocol.message import MessageCodec

logger = logging.getLogger(__name__)

DEFAULT_HEX_BINARY_FRAMES = os.environ.get("SENSORLOG_HEX_BINARY_FRAMES", "0") == "1"

_HEX_DIGITS = "0123456789ABCDEF"


class ConnectionStatus(str, Enum):
    """连接状态"""

    CONNECTING = "Connecting"
    OPEN = "Open"
    FAILED = "Failed"
    CLOSED = "Closed"

    @property
    def is_terminal(self) -> bool:
        return self in (ConnectionStatus.FAILED, ConnectionStatus.CLOSED)


_TRANSITIONS = {
    ConnectionStatus.CONNECTING: {ConnectionStatus.OPEN, ConnectionStatus.FAILED},
    ConnectionStatus.OPEN: {ConnectionStatus.CLOSED},
    ConnectionStatus.FAILED: set(),
    ConnectionStatus.CLOSED: set(),
}


class CloseCode(IntEnum):
    """RFC 6455 关闭码"""

    NORMAL = 1000
    GOING_AWAY = 1001
    PROTOCOL_ERROR = 1002
    UNSUPPORTED_DATA = 1003
    NO_STATUS = 1005
    ABNORMAL_CLOSE = 1006
    INVALID_PAYLOAD = 1007
    POLICY_VIOLATION = 1008
    MESSAGE_TOO_BIG = 1009
    EXTENSION_REQUIRED = 1010
    INTERNAL_ERROR = 1011
    SERVICE_RESTART = 1012
    TRY_AGAIN_LATER = 1013

    @classmethod
    def describe(cls, code: Optional[int]) -> str:
        """关闭码的可读名称"""
        if code is None:
            return "No status"
        try:
            return cls(code).name.replace("_", " ").capitalize()
        except ValueError:
            return "Unknown"


@dataclass(frozen=True)
class ConnectionMetadata:
    """连接状态快照（不可变，整体替换）"""

    uri: str
    status: ConnectionStatus = ConnectionStatus.CONNECTING
    server: str = "N/A"
    error_reason: str = ""


@dataclass
class SessionConfig:
    """会话配置"""

    ping_interval: float = 0  # 0 = 不发送 ping
    ping_timeout: Optional[float] = None
    hex_binary_frames: bool = DEFAULT_HEX_BINARY_FRAMES  # 旧版行为：二进制帧转十六进制文本
    ssl_verify: bool = True
    join_timeout: float = 5.0
    headers: Dict[str, str] = field(default_factory=dict)


def to_hex(data: bytes) -> str:
    """二进制帧的十六进制文本形式（每字节两位大写 + 空格）"""
    return "".join(_HEX_DIGITS[b >> 4] + _HEX_DIGITS[b & 0x0F] + " " for b in data)


class _Connection:
    """单次连接尝试及其生命周期，回调只在后台线程上修改状态"""

    def __init__(self, owner: "ConnectionSession", uri: str):
        self.owner = owner
        self.uri = uri
        self.metadata = ConnectionMetadata(uri=uri)
        self.detached = False
        self.app = websocket.WebSocketApp(
            uri,
            header=owner.config.headers or None,
            on_open=self._on_open,
            on_message=self._on_message,
            on_error=self._on_error,
            on_close=self._on_close,
        )

    def _transition(self, status: ConnectionStatus, **changes: Any) -> bool:
        current = self.metadata
        if status not in _TRANSITIONS[current.status]:
            return False
        self.metadata = replace(current, status=status, **changes)
        self.owner._notify_status(self)
        return True

    def _on_open(self, ws) -> None:
        if self.detached:
            # 已被替换的会话晚到的 open，直接关闭
            ws.close()
            return
        if self.metadata.status != ConnectionStatus.CONNECTING:
            return
        self._transition(ConnectionStatus.OPEN, server=_server_header(ws))
        logger.info(f"Connection open: {self.uri} (server: {self.metadata.server})")

    def _on_error(self, ws, error) -> None:
        if self.detached:
            return
        reason = str(error) or type(error).__name__
        if self.metadata.status == ConnectionStatus.CONNECTING:
            self._transition(ConnectionStatus.FAILED, server=_server_header(ws), error_reason=reason)
            logger.error(f"Connection failed: {self.uri}: {reason}")
        elif self.metadata.status == ConnectionStatus.OPEN:
            self.metadata = replace(self.metadata, error_reason=reason)
            logger.warning(f"Connection error: {self.uri}: {reason}")

    def _on_close(self, ws, close_status_code=None, close_msg=None) -> None:
        if self.detached:
            return
        if self.metadata.status == ConnectionStatus.CONNECTING:
            self._transition(
                ConnectionStatus.FAILED,
                error_reason="connection closed before handshake completed",
            )
            return
        if self.metadata.status != ConnectionStatus.OPEN:
            return
        reason = (
            f"close code: {close_status_code} ({CloseCode.describe(close_status_code)}), "
            f"close reason: {close_msg or ''}"
        )
        self._transition(ConnectionStatus.CLOSED, error_reason=reason)
        logger.info(f"Connection closed: {self.uri}, {reason}")

    def _on_message(self, ws, message) -> None:
        if self.detached:
            return
        if isinstance(message, str):
            payload = message.encode("utf-8")
        elif self.owner.config.hex_binary_frames:
            payload = to_hex(message).encode("ascii")
        else:
            payload = bytes(message)
        self.owner._deliver(payload)

    def teardown(self, code: int, reason: str = "") -> None:
        """分离会话；只有 Open 的连接才发送关闭帧，仍在握手的连接直接中止"""
        self.detached = True
        status = self.metadata.status
        try:
            if status == ConnectionStatus.OPEN:
                self.app.close(status=int(code), reason=reason.encode("utf-8"))
            elif status == ConnectionStatus.CONNECTING:
                self.app.close()
        except Exception as e:
            logger.error(f"Error closing connection: {e}")


def _server_header(ws) -> str:
    sock = getattr(ws, "sock", None)
    headers = sock.getheaders() if sock is not None else None
    if not headers:
        return "N/A"
    return headers.get("server", "N/A")


class ConnectionSession:
    """
    WebSocket 连接会话

    使用示例：
    ```python
    session = ConnectionSession(JsonMessageCodec(OutputMessage))
    session.subscribe(recorder.record)
    session.connect("ws://192.168.0.103:5050/output-stream")
    ...
    session.shutdown()
    ```
    """

    def __init__(self, codec: MessageCodec, config: Optional[SessionConfig] = None):
        self.codec = codec
        self.config = config or SessionConfig()

        self._connection: Optional[_Connection] = None
        self._lock = threading.Lock()
        self._stopped = False

        # 回调
        self._subscribers: List[Callable[[Any], None]] = []
        self._status_listeners: List[Callable[[ConnectionMetadata], None]] = []

        # 常驻后台线程
        self._jobs: "queue.Queue[Optional[_Connection]]" = queue.Queue()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="ConnectionSession"
        )
        self._thread.start()

    def __enter__(self) -> "ConnectionSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    @property
    def metadata(self) -> Optional[ConnectionMetadata]:
        """当前会话状态快照，无会话时为 None"""
        connection = self._connection
        return connection.metadata if connection else None

    @property
    def status(self) -> Optional[ConnectionStatus]:
        metadata = self.metadata
        return metadata.status if metadata else None

    @property
    def is_open(self) -> bool:
        return self.status == ConnectionStatus.OPEN

    # ==================== 订阅 ====================

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[Any], None]:
        """注册消息回调（可用作装饰器）"""
        with self._lock:
            self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: Callable[[Any], None]) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def on_status(
        self, callback: Callable[[ConnectionMetadata], None]
    ) -> Callable[[ConnectionMetadata], None]:
        """注册状态变化回调"""
        with self._lock:
            self._status_listeners.append(callback)
        return callback

    # ==================== 生命周期 ====================

    def connect(self, uri: str) -> ConnectionMetadata:
        """
        发起连接，已有会话会先被关闭

        Raises:
            ConnectionInitError: URI 无法解析或会话已停止
        """
        if self._stopped:
            raise ConnectionInitError("session has been shut down", {"uri": uri})

        parsed = urlparse(uri)
        if parsed.scheme not in ("ws", "wss") or not parsed.hostname:
            logger.error(f"Connect initialization error: invalid uri {uri!r}")
            raise ConnectionInitError(f"invalid websocket uri: {uri!r}", {"uri": uri})
        try:
            parsed.port
        except ValueError as e:
            logger.error(f"Connect initialization error: {e}")
            raise ConnectionInitError(f"invalid websocket uri: {uri!r}", {"uri": uri}) from e

        # 替换与入队在同一把锁内完成，并发 connect 时只有最后一个会话保持有效
        with self._lock:
            if self._stopped:
                raise ConnectionInitError("session has been shut down", {"uri": uri})
            previous = self._connection
            connection = _Connection(self, uri)
            self._connection = connection
            self._jobs.put(connection)

        if previous is not None:
            previous.teardown(CloseCode.NORMAL)
        logger.info(f"Connecting to {uri}")
        return connection.metadata

    def close(self, code: int = CloseCode.NORMAL, reason: str = "") -> None:
        """关闭当前会话（仅对 Open 的连接发送关闭帧）"""
        with self._lock:
            connection = self._connection
            self._connection = None

        if connection is None:
            logger.info("No connection found")
            return

        connection.teardown(code, reason)

    def shutdown(self) -> None:
        """停止常驻线程并关闭连接，之后不会再有回调触发"""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._jobs.put(None)

        if self._connection is not None:
            self.close(CloseCode.GOING_AWAY)

        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.config.join_timeout)
            if self._thread.is_alive():
                logger.warning("Connection thread did not stop in time")

    # ==================== 内部 ====================

    def _run(self) -> None:
        """常驻循环：依次运行每个会话的事件循环"""
        while True:
            connection = self._jobs.get()
            if connection is None:
                break
            if connection.detached:
                continue
            try:
                connection.app.run_forever(**self._run_options(connection.uri))
            except Exception as e:
                logger.error(f"Connection loop error: {e}")
                connection._on_error(connection.app, e)

    def _run_options(self, uri: str) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "ping_interval": self.config.ping_interval,
            "ping_timeout": self.config.ping_timeout,
            "reconnect": 0,
        }
        if uri.startswith("wss://") and not self.config.ssl_verify:
            options["sslopt"] = {"cert_reqs": ssl.CERT_NONE}
        return options

    def _deliver(self, payload: bytes) -> None:
        try:
            message = self.codec.deserialize(payload)
        except MessageDecodeError as e:
            logger.error(f"Dropping inbound frame: {e}")
            return

        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(message)
            except Exception as e:
                logger.error(f"Subscriber error: {e}")

    def _notify_status(self, connection: _Connection) -> None:
        if connection is not self._connection:
            return
        with self._lock:
            listeners = list(self._status_listeners)
        for callback in listeners:
            try:
                callback(connection.metadata)
            except Exception as e:
                logger.error(f"Status callback error: {e}")
