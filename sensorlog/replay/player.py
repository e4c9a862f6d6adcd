"""
Message Player - 消息回放器

从偏移 0 开始顺序读取二进制日志中的记录，解码后交给 sink：
- 可配置的记录间隔（毫秒），便于人工观察
- 文件末尾的不完整记录视为正常结束
- 负载无法反序列化的记录按已解码长度跳过
- 长度字段本身损坏时停止回放
"""

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generator, Optional, Union

from ..errors import FrameError, MessageDecodeError
from ..protocol import frame
from ..protocol.message import MessageCodec
from ..storage.binary_file import FileMode
from .handler import DEFAULT_LOG_DIR, MessageHandler

logger = logging.getLogger(__name__)

DEFAULT_PLAY_INTERVAL_MS = int(os.environ.get("SENSORLOG_PLAY_INTERVAL_MS", "1000"))


@dataclass
class PlayerConfig:
    """回放器配置"""

    input_dir: str = DEFAULT_LOG_DIR
    interval_ms: int = DEFAULT_PLAY_INTERVAL_MS  # 记录间隔，0 表示不等待


@dataclass
class PlayerStats:
    """回放统计"""

    messages_played: int = 0
    records_skipped: int = 0
    bytes_read: int = 0
    truncated_tail: bool = False
    corrupt_length: bool = False


class MessagePlayer(MessageHandler):
    """
    消息回放器

    使用示例：
    ```python
    player = MessagePlayer(JsonMessageCodec(OutputMessage))
    player.start("OutputMessage", print_output_message)
    player.play(1000)  # 每秒一条
    player.stop()
    ```
    """

    def __init__(self, codec: MessageCodec, config: Optional[PlayerConfig] = None):
        self.config = config or PlayerConfig()
        super().__init__(codec, self.config.input_dir)
        self.stats = PlayerStats()
        self._sink: Optional[Callable[[Any], None]] = None
        self._cancel = threading.Event()

    def start(self, name: Union[str, Path], sink: Callable[[Any], None]) -> bool:
        """打开 `<name>.bin` 准备回放"""
        self._reset(name)
        self._sink = sink
        self.stats = PlayerStats()
        if not self._open_file(FileMode.READ):
            logger.error(f"启动回放失败: {self.bin_file_name}")
            return False
        return True

    def stop(self) -> None:
        """停止回放，可重复调用"""
        self._reset()
        self._sink = None

    def cancel(self) -> None:
        """中断正在进行的 play()（可从其他线程调用）"""
        self._cancel.set()

    def iter_messages(self) -> Generator[Any, None, None]:
        """按文件顺序逐条产出消息（不等待）"""
        if not self._started:
            logger.warning("Player has not started!")
            return

        position = 0
        file_size = self.bin_file.size()
        while position < file_size:
            length_field = self.bin_file.read(position, frame.LENGTH_FIELD_SIZE)
            if len(length_field) < frame.LENGTH_FIELD_SIZE:
                # 空读取为正常结束，短读取为截断的尾记录
                if length_field:
                    self._truncated(position)
                break
            position += len(length_field)

            try:
                length = frame.decode_length(length_field)
            except FrameError as e:
                logger.warning(f"长度字段损坏 @{position - len(length_field)}，停止回放: {e}")
                self.stats.corrupt_length = True
                break

            if position + length > file_size:
                self._truncated(position - len(length_field))
                break
            data = self.bin_file.read(position, length) if length else b""
            if len(data) < length:
                self._truncated(position - len(length_field))
                break
            position += len(data)
            self.stats.bytes_read = position

            try:
                message = self.codec.deserialize(data)
            except MessageDecodeError as e:
                logger.error(f"消息反序列化失败，跳过记录: {e}")
                self.stats.records_skipped += 1
                continue

            yield message

    def play(self, interval_ms: Optional[int] = None) -> int:
        """
        回放整个文件

        Args:
            interval_ms: 记录之间的等待时间（毫秒），默认使用配置值

        Returns:
            交付给 sink 的消息数
        """
        if not self._started or self._sink is None:
            logger.warning("Player has not started!")
            return 0

        if interval_ms is None:
            interval_ms = self.config.interval_ms

        self._cancel.clear()
        delivered = 0
        for message in self.iter_messages():
            try:
                self._sink(message)
            except Exception as e:
                logger.error(f"Sink error: {e}")
            delivered += 1
            self.stats.messages_played += 1

            if interval_ms > 0:
                if self._cancel.wait(interval_ms / 1000.0):
                    break
            elif self._cancel.is_set():
                break

        logger.info(f"Finished Reading File: {self.bin_file_name}")
        return delivered

    def _truncated(self, position: int) -> None:
        logger.debug(f"文件末尾记录不完整 @{position}，结束回放")
        self.stats.truncated_tail = True
