"""
Connection Module - 网络连接层

提供 ConnectionSession（WebSocket 会话状态机）与 SensorClient（监听器分发）。

使用示例：
    from sensorlog.connection import SensorClient, RecorderListener

    client = SensorClient("ws://192.168.0.103:5050", JsonMessageCodec())
    client.subscribe_listener(RecorderListener(client, recorder))
"""

from .session import (
    ConnectionSession,
    ConnectionStatus,
    ConnectionMetadata,
    SessionConfig,
    CloseCode,
    to_hex,
)
from .client import (
    SensorClient,
    MessageListener,
    RecorderListener,
    ListenerError,
    RECONNECT_ERRORS,
)

__all__ = [
    "ConnectionSession",
    "ConnectionStatus",
    "ConnectionMetadata",
    "SessionConfig",
    "CloseCode",
    "to_hex",
    "SensorClient",
    "MessageListener",
    "RecorderListener",
    "ListenerError",
    "RECONNECT_ERRORS",
]
