"""
Protocol Message Types - 传感器输出消息定义

基于 Pydantic 的 OutputMessage 模式：
- stream: 跟踪目标流（位置、速度、分类、区域）
- event: 区域事件
录制/回放核心只通过 MessageCodec 看到消息，不解释字段含义。
"""

import time
from enum import Enum
from typing import Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import MessageDecodeError, MessageEncodeError


class TrackingStatus(str, Enum):
    """目标跟踪状态"""

    INVALID = "INVALID"
    DRIFTING = "DRIFTING"
    TRACKING = "TRACKING"
    VALIDATING = "VALIDATING"


class LabelType(str, Enum):
    """分类结果"""

    NONE = "NONE"
    CAR = "CAR"
    PED = "PED"
    CYCLIST = "CYCLIST"
    MISC = "MISC"


class ZoneEventType(str, Enum):
    """区域事件类型"""

    ENTRY = "ENTRY"
    EXIT = "EXIT"


class SchemaModel(BaseModel):
    """模式基类：NaN/Inf 以 JSON 常量输出，回放时可原样解析"""

    model_config = ConfigDict(ser_json_inf_nan="constants")


class Vector3(SchemaModel):
    """三维向量"""

    x: float = Field(default=0.0, description="X")
    y: float = Field(default=0.0, description="Y")
    z: float = Field(default=0.0, description="Z")


class BoundingBox(SchemaModel):
    """目标包围盒"""

    position: Vector3 = Field(default_factory=Vector3, description="中心位置")
    size: Vector3 = Field(default_factory=Vector3, description="尺寸")
    yaw: float = Field(default=0.0, description="航向角（弧度）")


class TrackedObject(SchemaModel):
    """单个跟踪目标"""

    id: int = Field(..., ge=0, description="目标 ID")
    label: LabelType = Field(default=LabelType.NONE, description="分类结果")
    tracking_status: TrackingStatus = Field(
        default=TrackingStatus.INVALID, description="跟踪状态"
    )
    last_observed_timestamp: float = Field(default=0.0, ge=0, description="最后观测时间")
    bbox: Optional[BoundingBox] = Field(default=None, description="包围盒")
    velocity: Optional[Vector3] = Field(default=None, description="速度")
    zone_ids: List[int] = Field(default_factory=list, description="所在区域")


class StreamMessage(SchemaModel):
    """目标流"""

    objects: List[TrackedObject] = Field(default_factory=list)


class ZoneObject(SchemaModel):
    id: int = Field(..., ge=0)
    position: Vector3 = Field(default_factory=Vector3)


class ZoneEvent(SchemaModel):
    """区域进出事件"""

    id: int = Field(..., description="区域 ID")
    type: ZoneEventType = Field(..., description="事件类型")
    timestamp: float = Field(default=0.0, ge=0, description="事件时间")
    object: ZoneObject


class EventMessage(SchemaModel):
    zone: List[ZoneEvent] = Field(default_factory=list)


class OutputMessage(SchemaModel):
    """
    传感器输出消息

    对应输出流中的一帧：时间戳 + 可选的目标流和事件。
    """

    timestamp: float = Field(default_factory=time.time, ge=0, description="消息时间戳")
    stream: Optional[StreamMessage] = Field(default=None, description="目标流")
    event: Optional[EventMessage] = Field(default=None, description="事件")

    model_config = ConfigDict(extra="allow")

    @field_validator("timestamp", mode="before")
    @classmethod
    def normalize_timestamp(cls, v) -> float:
        """毫秒时间戳换算为秒"""
        if v is None:
            return 0.0
        ts = float(v)
        if ts > 1_000_000_000_000:
            return ts / 1000.0
        return ts

    @property
    def has_stream(self) -> bool:
        return self.stream is not None

    @property
    def has_event(self) -> bool:
        return self.event is not None


M = TypeVar("M")


class MessageCodec(Generic[M]):
    """消息与字节串之间的转换"""

    def serialize(self, message: M) -> bytes:
        raise NotImplementedError

    def deserialize(self, data: bytes) -> M:
        raise NotImplementedError


class JsonMessageCodec(MessageCodec[BaseModel]):
    """
    Pydantic 模型的 JSON 编解码器

    使用示例：
    ```python
    codec = JsonMessageCodec(OutputMessage)
    data = codec.serialize(OutputMessage(timestamp=1.0))
    msg = codec.deserialize(data)
    ```
    """

    def __init__(self, model: Type[BaseModel] = OutputMessage):
        self.model = model

    def serialize(self, message: BaseModel) -> bytes:
        if not isinstance(message, self.model):
            raise MessageEncodeError(
                f"expected {self.model.__name__}, got {type(message).__name__}"
            )
        try:
            return message.model_dump_json().encode("utf-8")
        except (ValueError, TypeError) as e:
            raise MessageEncodeError(f"{self.model.__name__} serialization failed: {e}") from e

    def deserialize(self, data: bytes) -> BaseModel:
        try:
            return self.model.model_validate_json(data)
        except ValidationError as e:
            raise MessageDecodeError(
                f"{self.model.__name__} deserialization failed: {e.error_count()} error(s)",
                {"size": len(data)},
            ) from e


class RawCodec(MessageCodec[bytes]):
    """原样透传字节串，消息本身就是已序列化的负载"""

    def serialize(self, message: bytes) -> bytes:
        if not isinstance(message, (bytes, bytearray)):
            raise MessageEncodeError(f"expected bytes, got {type(message).__name__}")
        return bytes(message)

    def deserialize(self, data: bytes) -> bytes:
        return bytes(data)
