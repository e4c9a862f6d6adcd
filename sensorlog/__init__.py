"""
sensorlog - 传感器输出流录制与回放

包含:
- storage: 线程安全的二进制日志文件
- protocol: 记录帧编解码与消息模式
- connection: WebSocket 会话与监听器
- replay: 录制器与回放器
"""

from .errors import (
    SensorLogError,
    FrameError,
    MessageCodecError,
    MessageEncodeError,
    MessageDecodeError,
    ConnectionInitError,
)
from .storage import BinaryFile, FileMode, APPEND
from .protocol import (
    LENGTH_FIELD_SIZE,
    OutputMessage,
    MessageCodec,
    JsonMessageCodec,
    RawCodec,
)
from .replay import (
    MessageRecorder,
    RecorderConfig,
    MessagePlayer,
    PlayerConfig,
)
from .connection import (
    ConnectionSession,
    ConnectionStatus,
    ConnectionMetadata,
    SessionConfig,
    CloseCode,
    SensorClient,
    MessageListener,
    RecorderListener,
    ListenerError,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "SensorLogError",
    "FrameError",
    "MessageCodecError",
    "MessageEncodeError",
    "MessageDecodeError",
    "ConnectionInitError",
    # Storage
    "BinaryFile",
    "FileMode",
    "APPEND",
    # Protocol
    "LENGTH_FIELD_SIZE",
    "OutputMessage",
    "MessageCodec",
    "JsonMessageCodec",
    "RawCodec",
    # Replay
    "MessageRecorder",
    "RecorderConfig",
    "MessagePlayer",
    "PlayerConfig",
    # Connection
    "ConnectionSession",
    "ConnectionStatus",
    "ConnectionMetadata",
    "SessionConfig",
    "CloseCode",
    "SensorClient",
    "MessageListener",
    "RecorderListener",
    "ListenerError",
]
