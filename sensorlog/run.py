#!/usr/bin/env python3
"""
sensorlog - 输出流录制 / 回放

Usage:
    python -m sensorlog ws://192.168.0.103:5050   # 录制到 OutputMessage.bin，回车结束
    python -m sensorlog                            # 回放 OutputMessage.bin，每秒一条
    python -m sensorlog --name run1 --interval 0   # 回放 run1.bin，不等待
"""

import argparse
import logging
import sys
from typing import List, Optional

from .connection import RecorderListener, SensorClient
from .console import ConsoleColor, print_line, print_output_message
from .errors import SensorLogError
from .protocol.message import JsonMessageCodec, OutputMessage
from .replay import DEFAULT_FILE_NAME, MessagePlayer, MessageRecorder, PlayerConfig, RecorderConfig
from .replay.handler import DEFAULT_LOG_DIR
from .replay.player import DEFAULT_PLAY_INTERVAL_MS

logger = logging.getLogger("sensorlog")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sensorlog",
        description="Record a sensor output stream to a binary log, or replay one.",
    )
    parser.add_argument(
        "address",
        nargs="?",
        default="",
        help="WebSocket address to record from (e.g. ws://192.168.0.103:5050); omit to replay",
    )
    parser.add_argument("--name", default=DEFAULT_FILE_NAME, help="log file name (without .bin)")
    parser.add_argument("--dir", default=DEFAULT_LOG_DIR, help="log directory")
    parser.add_argument(
        "--interval",
        type=int,
        default=DEFAULT_PLAY_INTERVAL_MS,
        help="milliseconds between replayed messages",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def record(address: str, name: str, directory: str) -> int:
    """录制直到用户按回车或 Ctrl+C"""
    codec = JsonMessageCodec(OutputMessage)
    recorder = MessageRecorder(codec, RecorderConfig(output_dir=directory))
    if not recorder.start(name):
        print_line("StartRecorder Failed.", ConsoleColor.RED)
        return 1

    client = SensorClient(address, codec)
    try:
        if not client.subscribe_listener(RecorderListener(client, recorder)):
            print_line("SubscribeMessageListener Failed.", ConsoleColor.RED)
            return 1
        print_line(f"Recording {client.uri} -> {recorder.bin_file_name}", ConsoleColor.GREEN)
        print_line("Press Enter to stop.")
        try:
            input()
        except (EOFError, KeyboardInterrupt):
            pass
    finally:
        client.close()
        recorder.stop()
    return 0


def play(name: str, directory: str, interval_ms: int) -> int:
    """回放到控制台"""
    codec = JsonMessageCodec(OutputMessage)
    player = MessagePlayer(codec, PlayerConfig(input_dir=directory, interval_ms=interval_ms))
    if not player.start(name, print_output_message):
        print_line("StartPlayer Failed.", ConsoleColor.RED)
        return 1
    try:
        player.play(interval_ms)
    except KeyboardInterrupt:
        player.cancel()
    finally:
        player.stop()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    print(f"IP: [{args.address}]")
    try:
        if args.address:
            return record(args.address, args.name, args.dir)
        return play(args.name, args.dir, args.interval)
    except SensorLogError as e:
        logger.error(e.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())
