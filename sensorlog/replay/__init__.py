"""
Replay Module - 录制与回放

- handler: 日志路径解析与公共文件状态
- recorder: 消息录制器
- player: 消息回放器
"""

from .handler import MessageHandler, resolve_log_path, DEFAULT_FILE_NAME, LOG_SUFFIX
from .recorder import MessageRecorder, RecorderConfig, RecorderStats
from .player import MessagePlayer, PlayerConfig, PlayerStats

__all__ = [
    "MessageHandler",
    "resolve_log_path",
    "DEFAULT_FILE_NAME",
    "LOG_SUFFIX",
    "MessageRecorder",
    "RecorderConfig",
    "RecorderStats",
    "MessagePlayer",
    "PlayerConfig",
    "PlayerStats",
]
