"""
Tests for sensorlog.connection.client - 输出流客户端与监听器测试
"""

import pytest

from sensorlog.connection import (
    ConnectionSession,
    ListenerError,
    MessageListener,
    RECONNECT_ERRORS,
    RecorderListener,
    SensorClient,
    SessionConfig,
)
from sensorlog.protocol import frame
from sensorlog.protocol.message import RawCodec
from sensorlog.replay import MessageRecorder, RecorderConfig

from conftest import wait_for

ADDRESS = "ws://192.168.0.103:5050"


class RecordingListener(MessageListener):
    def __init__(self):
        self.errors = []
        self.messages = []

    def on_error(self, error, reason):
        self.errors.append((error, reason))

    def on_output_message(self, message):
        self.messages.append(message)


@pytest.fixture
def client(fake_ws):
    session = ConnectionSession(RawCodec(), SessionConfig(join_timeout=1.0))
    c = SensorClient(ADDRESS, RawCodec(), session=session, reconnect_delay=0.01, reconnect_delay_max=0.04)
    yield c
    c.close()


def current_app(fake_ws):
    app = fake_ws.instances[-1]
    assert wait_for(app.started.is_set)
    return app


class TestUri:
    """地址拼接测试"""

    def test_appends_output_stream(self, client):
        """测试追加 /output-stream"""
        assert client.uri == "ws://192.168.0.103:5050/output-stream"

    def test_trailing_slash(self, fake_ws):
        """测试去掉末尾斜杠"""
        c = SensorClient(ADDRESS + "/", RawCodec(), session=ConnectionSession(RawCodec()))
        try:
            assert c.uri == "ws://192.168.0.103:5050/output-stream"
        finally:
            c.close()

    def test_already_has_path(self, fake_ws):
        """测试已包含路径时不重复追加"""
        c = SensorClient(ADDRESS + "/output-stream", RawCodec(), session=ConnectionSession(RawCodec()))
        try:
            assert c.uri == "ws://192.168.0.103:5050/output-stream"
        finally:
            c.close()


class TestListeners:
    """监听器注册与分发测试"""

    def test_first_listener_connects(self, client, fake_ws):
        """测试第一个监听器注册时发起连接"""
        assert client.subscribe_listener(RecordingListener())
        assert [app.url for app in fake_ws.instances] == [client.uri]

    def test_second_listener_reuses_session(self, client, fake_ws):
        """测试后续监听器不重复连接"""
        first, second = RecordingListener(), RecordingListener()
        client.subscribe_listener(first)
        client.subscribe_listener(second)
        client.subscribe_listener(first)
        assert len(fake_ws.instances) == 1

    def test_messages_fan_out(self, client, fake_ws):
        """测试消息按注册顺序分发给所有监听器"""
        first, second = RecordingListener(), RecordingListener()
        client.subscribe_listener(first)
        client.subscribe_listener(second)
        app = current_app(fake_ws)
        app.server_open()
        app.server_message(b"payload")
        assert app.sync()
        assert client.connected
        assert first.messages == [b"payload"]
        assert second.messages == [b"payload"]

    def test_unsubscribe(self, client, fake_ws):
        """测试取消注册后不再收到消息"""
        listener = RecordingListener()
        client.subscribe_listener(listener)
        client.unsubscribe_listener(listener)
        app = current_app(fake_ws)
        app.server_open()
        app.server_message(b"payload")
        assert app.sync()
        assert listener.messages == []

    def test_failure_reported(self, client, fake_ws):
        """测试连接失败通过错误通道报告"""
        listener = RecordingListener()
        client.subscribe_listener(listener)
        app = current_app(fake_ws)
        app.server_fail(ConnectionRefusedError("refused"))
        assert wait_for(lambda: listener.errors)
        error, reason = listener.errors[0]
        assert error == ListenerError.OUTPUT_MESSAGE_CONNECTION
        assert "failed" in reason
        assert "refused" in reason

    def test_remote_close_reported(self, client, fake_ws):
        """测试服务端关闭通过错误通道报告"""
        listener = RecordingListener()
        client.subscribe_listener(listener)
        app = current_app(fake_ws)
        app.server_open()
        app.server_close(1001, "restart")
        assert wait_for(lambda: listener.errors)
        error, reason = listener.errors[0]
        assert error == ListenerError.OUTPUT_MESSAGE_CONNECTION
        assert "closed" in reason

    def test_invalid_address(self, fake_ws):
        """测试地址非法时注册失败并报告错误"""
        c = SensorClient("http://192.168.0.103:5050", RawCodec(), session=ConnectionSession(RawCodec()))
        listener = RecordingListener()
        try:
            assert c.subscribe_listener(listener) is False
            assert listener.errors[0][0] == ListenerError.OUTPUT_MESSAGE_CONNECTION
            assert fake_ws.instances == []
        finally:
            c.close()

    def test_no_reports_after_close(self, client, fake_ws):
        """测试客户端关闭后不再报告错误"""
        listener = RecordingListener()
        client.subscribe_listener(listener)
        app = current_app(fake_ws)
        app.server_open()
        assert app.sync()
        client.close()
        assert listener.errors == []


class TestReconnect:
    """重连测试"""

    def test_reconnect_errors(self):
        """测试需要重连的错误类别"""
        assert ListenerError.OUTPUT_MESSAGE_CONNECTION in RECONNECT_ERRORS
        assert ListenerError.POINT_RESULT_CONNECTION in RECONNECT_ERRORS
        assert ListenerError.OUTPUT_BUFFER_OVERFLOW in RECONNECT_ERRORS
        assert ListenerError.INVALID_MESSAGE not in RECONNECT_ERRORS

    def test_recorder_listener_reconnects(self, client, fake_ws, tmp_path):
        """测试连接失败后 RecorderListener 触发重连"""
        recorder = MessageRecorder(RawCodec(), RecorderConfig(output_dir=str(tmp_path)))
        client.subscribe_listener(RecorderListener(client, recorder))
        app = current_app(fake_ws)
        app.server_fail(ConnectionRefusedError("refused"))
        assert wait_for(lambda: len(fake_ws.instances) == 2)
        assert fake_ws.instances[1].url == client.uri

    def test_non_connection_error_no_reconnect(self, client, tmp_path):
        """测试非连接类错误不触发重连"""
        recorder = MessageRecorder(RawCodec(), RecorderConfig(output_dir=str(tmp_path)))
        listener = RecorderListener(client, recorder)
        listener.on_error(ListenerError.INVALID_MESSAGE, "bad message")
        assert client._reconnect_timer is None

    def test_backoff(self, fake_ws):
        """测试重连间隔指数增长并有上限"""
        c = SensorClient(
            ADDRESS,
            RawCodec(),
            session=ConnectionSession(RawCodec()),
            reconnect_delay=10.0,
            reconnect_delay_max=40.0,
        )
        delays = []
        try:
            for _ in range(4):
                delays.append(c._current_delay)
                c.reconnect()
                c._reconnect_timer.cancel()
                c._reconnect_timer = None
        finally:
            c.close()
        assert delays == [10.0, 20.0, 40.0, 40.0]

    def test_backoff_reset_on_open(self, client, fake_ws):
        """测试连接成功后重连间隔复位"""
        client._current_delay = 0.04
        client.subscribe_listener(RecordingListener())
        app = current_app(fake_ws)
        app.server_open()
        assert app.sync()
        assert client._current_delay == 0.01

    def test_no_reconnect_after_close(self, client):
        """测试关闭后不再重连"""
        client.close()
        client.reconnect()
        assert client._reconnect_timer is None


class TestRecorderListener:
    """RecorderListener 测试"""

    def test_records_messages(self, client, fake_ws, tmp_path):
        """测试收到的消息写入录制器"""
        recorder = MessageRecorder(RawCodec(), RecorderConfig(output_dir=str(tmp_path)))
        recorder.start("live")
        client.subscribe_listener(RecorderListener(client, recorder))
        app = current_app(fake_ws)
        app.server_open()
        app.server_message(b"one")
        app.server_message(b"two")
        assert app.sync()
        recorder.stop()
        assert (tmp_path / "live.bin").read_bytes() == frame.encode(b"one") + frame.encode(b"two")
