"""
Storage Module - 二进制日志文件存储
"""

from .binary_file import BinaryFile, FileMode, APPEND

__all__ = [
    "BinaryFile",
    "FileMode",
    "APPEND",
]
