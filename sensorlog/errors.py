"""
sensorlog 异常层级

    SensorLogError
    ├── FrameError            (同时是 ValueError)
    ├── MessageCodecError
    │   ├── MessageEncodeError
    │   └── MessageDecodeError
    └── ConnectionInitError

I/O 错误不在此列：BinaryFile 记录日志并返回失败值，由调用方检查。
"""

from typing import Any, Dict, Optional


class SensorLogError(Exception):
    """sensorlog 所有异常的基类"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context or {}


class FrameError(SensorLogError, ValueError):
    """长度字段无法编码或解码"""


class MessageCodecError(SensorLogError):
    """消息序列化/反序列化失败"""


class MessageEncodeError(MessageCodecError):
    pass


class MessageDecodeError(MessageCodecError):
    pass


class ConnectionInitError(SensorLogError):
    """连接无法发起（URI 非法等），此时不会创建会话"""
