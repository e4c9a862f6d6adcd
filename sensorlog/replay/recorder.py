"""
Message Recorder - 消息录制器

把每条收到的消息按到达顺序追加到二进制日志：
长度字段与负载分两次追加写入，进程在两次写入之间崩溃时
文件末尾会留下一条不完整记录，回放时会被静默忽略。
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from ..errors import FrameError, MessageEncodeError
from ..protocol import frame
from ..protocol.message import MessageCodec
from ..storage.binary_file import APPEND, FileMode
from .handler import DEFAULT_LOG_DIR, MessageHandler

logger = logging.getLogger(__name__)


@dataclass
class RecorderConfig:
    """录制器配置"""

    output_dir: str = DEFAULT_LOG_DIR


@dataclass
class RecorderStats:
    """录制统计"""

    messages_recorded: int = 0
    bytes_written: int = 0
    serialization_failures: int = 0
    write_failures: int = 0


class MessageRecorder(MessageHandler):
    """
    消息录制器

    使用示例：
    ```python
    recorder = MessageRecorder(JsonMessageCodec(OutputMessage))
    recorder.start("OutputMessage")      # -> ./OutputMessage.bin
    recorder.record(message)
    recorder.stop()
    ```
    """

    def __init__(self, codec: MessageCodec, config: Optional[RecorderConfig] = None):
        self.config = config or RecorderConfig()
        super().__init__(codec, self.config.output_dir)
        self.stats = RecorderStats()
        self._lock = threading.Lock()

    def start(self, name: Union[str, Path]) -> bool:
        """开始录制到 `<name>.bin`（截断已有文件）"""
        with self._lock:
            self._reset(name)
            self.stats = RecorderStats()
            if not self._open_file(FileMode.WRITE):
                logger.error(f"启动录制失败: {self.bin_file_name}")
                return False
            logger.info(f"开始录制: {self.bin_file_name}")
            return True

    def stop(self) -> None:
        """停止录制，可重复调用"""
        with self._lock:
            if self._started:
                logger.info(
                    f"停止录制: {self.bin_file_name}, "
                    f"消息数: {self.stats.messages_recorded}, "
                    f"字节数: {self.stats.bytes_written}"
                )
            self._reset()

    def record(self, message: Any) -> bool:
        """录制一条消息，可在连接线程上调用"""
        if not self._started:
            logger.warning("Recorder has not started!")
            return False

        try:
            data = self.codec.serialize(message)
            length_field = frame.encode_length(len(data))
        except (MessageEncodeError, FrameError) as e:
            logger.error(f"消息序列化失败: {e}")
            with self._lock:
                self.stats.serialization_failures += 1
            return False

        with self._lock:
            if not self._started:
                return False
            if not self.bin_file.write(APPEND, length_field) or not self.bin_file.write(APPEND, data):
                self.stats.write_failures += 1
                return False
            self.stats.messages_recorded += 1
            self.stats.bytes_written += len(length_field) + len(data)
        return True
