"""
Frame Codec - 记录帧编解码

单条记录 = 32 字节 ASCII 位串长度字段（'0'/'1'，高位在前） + 负载。
该表示方式是既有日志文件的磁盘格式，必须逐位保持不变。
"""

from ..errors import FrameError

LENGTH_FIELD_SIZE = 32
MAX_PAYLOAD_SIZE = (1 << LENGTH_FIELD_SIZE) - 1

_BITS = frozenset(b"01")


def encode_length(length: int) -> bytes:
    """把负载长度编码为 32 字节位串"""
    if length < 0 or length > MAX_PAYLOAD_SIZE:
        raise FrameError(
            f"payload length {length} does not fit in {LENGTH_FIELD_SIZE} bits",
            {"length": length},
        )
    return format(length, f"0{LENGTH_FIELD_SIZE}b").encode("ascii")


def decode_length(field: bytes) -> int:
    """解码 32 字节位串长度字段"""
    if len(field) != LENGTH_FIELD_SIZE:
        raise FrameError(
            f"length field must be {LENGTH_FIELD_SIZE} bytes, got {len(field)}",
            {"field": bytes(field)},
        )
    if not _BITS.issuperset(field):
        raise FrameError("length field contains non-bit characters", {"field": bytes(field)})
    return int(field, 2)


def encode(payload: bytes) -> bytes:
    """编码一条完整记录"""
    return encode_length(len(payload)) + payload
