"""
Console Output - 彩色控制台输出

回放时默认的 sink：逐条打印 OutputMessage 的目标流与区域事件。
"""

from datetime import datetime, timezone
from enum import Enum

from .protocol.message import OutputMessage

RESET = "\033[0m"


class ConsoleColor(str, Enum):
    DEFAULT = ""
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    BLUE = "\033[1;34m"


def print_line(message: str, color: ConsoleColor = ConsoleColor.DEFAULT) -> None:
    """打印一行（可选颜色）"""
    if color == ConsoleColor.DEFAULT:
        print(message)
    else:
        print(f"{color.value}{message}{RESET}")


def format_timestamp(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _vec(v) -> str:
    return f"[{v.x},{v.y},{v.z}]"


def print_output_message(message: OutputMessage) -> None:
    """打印一条输出消息"""
    msg_time = format_timestamp(message.timestamp)

    if message.stream is not None:
        for obj in message.stream.objects:
            print_line(f"Obj ID : {obj.id}, Msg Timestamp: {msg_time}", ConsoleColor.GREEN)
            print_line(f"last_observed_timestamp: {format_timestamp(obj.last_observed_timestamp)}")
            if obj.bbox is not None:
                print_line(f"bbox Position: {_vec(obj.bbox.position)}, bbox yaw: {obj.bbox.yaw}")
            if obj.velocity is not None:
                print_line(f"velocity: {_vec(obj.velocity)}")
            print_line(f"tracking status: {obj.tracking_status.value}")
            print_line(f"classification result: {obj.label.value}")
            if obj.zone_ids:
                print_line(f"zone_ids: [{', '.join(str(z) for z in obj.zone_ids)}]")
    else:
        print_line("OutputMessage does not have StreamMessage.", ConsoleColor.YELLOW)

    if message.event is not None:
        for zone_event in message.event.zone:
            print_line(f"Zone ID : {zone_event.id}, Msg Timestamp: {msg_time}", ConsoleColor.BLUE)
            print_line(
                f"Zone Obj ID : {zone_event.object.id}, "
                f"Zone Timestamp: {format_timestamp(zone_event.timestamp)}"
            )
            print_line(f"zone event type: {zone_event.type.value}")
            print_line(f"zone object position: {_vec(zone_event.object.position)}")
    else:
        print_line("OutputMessage does not have EventMessage.", ConsoleColor.YELLOW)
