"""
Binary File - 线程安全的二进制日志文件

提供按位置寻址的字节存储：
- 追加写 / 定位写
- 限长读取（不越过文件末尾，不补齐）
- 大小查询
所有操作由同一把锁串行化；不提供跨进程协调。
"""

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional, Union

logger = logging.getLogger(__name__)

# 追加写入的位置哨兵值
APPEND = -1


class FileMode(str, Enum):
    """文件打开模式"""

    READ = "rb"
    WRITE = "wb"


class BinaryFile:
    """
    二进制日志文件

    使用示例：
    ```python
    log = BinaryFile()
    log.open("OutputMessage.bin", FileMode.WRITE)
    log.write(APPEND, b"...")
    log.close()
    ```
    """

    def __init__(self):
        self._file: Optional[BinaryIO] = None
        self._path: Optional[Path] = None
        self._mode: Optional[FileMode] = None
        self._lock = threading.Lock()

    def __enter__(self) -> "BinaryFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._file is not None

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def mode(self) -> Optional[FileMode]:
        return self._mode

    def open(self, path: Union[str, Path], mode: FileMode) -> bool:
        """打开文件；已打开时不做任何事"""
        with self._lock:
            if self._file is not None:
                return True

            try:
                self._file = open(path, FileMode(mode).value)
            except OSError as e:
                logger.error(f"打开文件失败 {path}: {e}")
                return False

            self._path = Path(path)
            self._mode = FileMode(mode)
            logger.debug(f"已打开 {self._path} ({self._mode.name})")
            return True

    def close(self) -> None:
        """关闭文件，可重复调用"""
        with self._lock:
            if self._file is None:
                return
            try:
                self._file.close()
            except OSError as e:
                logger.error(f"关闭文件失败 {self._path}: {e}")
            self._file = None
            self._mode = None

    def write(self, position: int, data: bytes) -> bool:
        """
        写入数据

        Args:
            position: 写入位置，APPEND 表示写到文件末尾
            data: 要写入的字节

        Returns:
            是否写入成功
        """
        with self._lock:
            if self._file is None:
                logger.error("File not open.")
                return False

            try:
                if position == APPEND:
                    self._file.seek(0, 2)
                else:
                    self._file.seek(position, 0)
                self._file.write(data)
                self._file.flush()
            except (OSError, ValueError) as e:
                logger.error(f"写入失败 {self._path}@{position}: {e}")
                return False
            return True

    def read(self, position: int, size: int) -> bytes:
        """
        读取数据

        position 超出文件大小时返回空字节；
        position + size 超出文件时只读取剩余部分；size < 0 读到末尾。
        """
        file_size = self.size()
        if position < 0 or position >= file_size:
            logger.error(f"Position out of bounds: {position} (size {file_size})")
            return b""

        with self._lock:
            if self._file is None:
                logger.error("File not open.")
                return b""

            if size < 0 or position + size > file_size:
                size = file_size - position

            try:
                self._file.seek(position, 0)
                return self._file.read(size)
            except (OSError, ValueError) as e:
                logger.error(f"读取失败 {self._path}@{position}: {e}")
                return b""

    def size(self) -> int:
        """当前文件字节数；未打开时返回 0"""
        with self._lock:
            if self._file is None:
                logger.error("File not open.")
                return 0
            try:
                return self._file.seek(0, 2)
            except (OSError, ValueError) as e:
                logger.error(f"获取文件大小失败 {self._path}: {e}")
                return 0
