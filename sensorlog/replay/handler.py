"""
Message Handler - 录制器/回放器公共基类

负责日志文件路径解析、打开与复位。
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from ..protocol.message import MessageCodec
from ..storage.binary_file import BinaryFile, FileMode

logger = logging.getLogger(__name__)

# 默认日志目录与文件名
DEFAULT_LOG_DIR = os.environ.get("SENSORLOG_OUTPUT_DIR", ".")
DEFAULT_FILE_NAME = os.environ.get("SENSORLOG_FILE_NAME", "OutputMessage")
LOG_SUFFIX = ".bin"


def resolve_log_path(name: Union[str, Path], directory: Union[str, Path] = DEFAULT_LOG_DIR) -> Path:
    """`<directory>/<name>.bin`；已带 .bin 后缀的名称保持不变，绝对路径忽略 directory"""
    path = Path(name)
    if not path.name:
        raise ValueError(f"empty log file name: {str(name)!r}")
    if path.suffix != LOG_SUFFIX:
        path = path.with_name(path.name + LOG_SUFFIX)
    if not path.is_absolute():
        path = Path(directory) / path
    return path


class MessageHandler:
    """录制器与回放器共享的文件状态"""

    def __init__(self, codec: MessageCodec, directory: Union[str, Path] = DEFAULT_LOG_DIR):
        self.codec = codec
        self.directory = Path(directory)
        self.bin_file = BinaryFile()
        self.bin_file_name: Optional[Path] = None
        self._started = False

    @property
    def is_started(self) -> bool:
        return self._started

    def _reset(self, name: Optional[Union[str, Path]] = None) -> None:
        """关闭当前文件并清除状态"""
        self.bin_file.close()
        self._started = False
        self.bin_file_name = None
        if name is None:
            return
        try:
            self.bin_file_name = resolve_log_path(name, self.directory)
        except ValueError as e:
            logger.error(f"无效的日志文件名: {e}")

    def _open_file(self, mode: FileMode) -> bool:
        if self.bin_file_name is None:
            return False
        if mode == FileMode.WRITE:
            self.bin_file_name.parent.mkdir(parents=True, exist_ok=True)
        self._started = self.bin_file.open(self.bin_file_name, mode)
        return self._started
