"""
Protocol Module - 记录帧与消息模式

- frame: 32 位 ASCII 长度前缀记录编解码
- message: OutputMessage 模式与 MessageCodec
"""

from . import frame
from .frame import LENGTH_FIELD_SIZE, MAX_PAYLOAD_SIZE, encode, encode_length, decode_length
from .message import (
    TrackingStatus,
    LabelType,
    ZoneEventType,
    SchemaModel,
    Vector3,
    BoundingBox,
    TrackedObject,
    StreamMessage,
    ZoneObject,
    ZoneEvent,
    EventMessage,
    OutputMessage,
    MessageCodec,
    JsonMessageCodec,
    RawCodec,
)

__all__ = [
    "frame",
    "LENGTH_FIELD_SIZE",
    "MAX_PAYLOAD_SIZE",
    "encode",
    "encode_length",
    "decode_length",
    "TrackingStatus",
    "LabelType",
    "ZoneEventType",
    "SchemaModel",
    "Vector3",
    "BoundingBox",
    "TrackedObject",
    "StreamMessage",
    "ZoneObject",
    "ZoneEvent",
    "EventMessage",
    "OutputMessage",
    "MessageCodec",
    "JsonMessageCodec",
    "RawCodec",
]
