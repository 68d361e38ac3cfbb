"""PulsarConnection のユニットテスト（pulsar.Client をモック）"""

import pulsar
import pytest
from conftest import FakeMessageId
from k1s0_pulsar_harness.exceptions import PulsarHarnessError, PulsarHarnessErrorCodes
from k1s0_pulsar_harness.models import Position, PulsarConfig, SchemaType
from k1s0_pulsar_harness.pulsar_client import PulsarConnection, connect
from pulsar.schema import AvroSchema, BytesSchema, Integer, Record, String, StringSchema

SERVICE_URL = "pulsar://pulsar:6650"


class Order(Record):
    order_id = String()
    quantity = Integer()


def test_connection_creates_client(mocker) -> None:
    """pulsar.Client がサービス URL とタイムアウトで作成されること。"""
    mock_client_cls = mocker.patch("pulsar.Client")
    PulsarConnection(SERVICE_URL, timeout_seconds=10.0)
    mock_client_cls.assert_called_once_with(SERVICE_URL, operation_timeout_seconds=10)


def test_connection_timeout_rounds_up(mocker) -> None:
    """1 秒未満や端数のタイムアウトが整数秒に切り上げられること。"""
    mock_client_cls = mocker.patch("pulsar.Client")
    PulsarConnection(SERVICE_URL, timeout_seconds=0.2)
    PulsarConnection(SERVICE_URL, timeout_seconds=2.5)
    timeouts = [c.kwargs["operation_timeout_seconds"] for c in mock_client_cls.call_args_list]
    assert timeouts == [1, 3]


def test_connection_with_auth_token(mocker) -> None:
    """認証トークン指定時に AuthenticationToken が渡されること。"""
    mock_client_cls = mocker.patch("pulsar.Client")
    mock_auth = mocker.patch("pulsar.AuthenticationToken")
    PulsarConnection(SERVICE_URL, auth_token="secret")
    mock_auth.assert_called_once_with("secret")
    _, kwargs = mock_client_cls.call_args
    assert kwargs["authentication"] is mock_auth.return_value


def test_new_producer_string(mocker) -> None:
    """STRING プロデューサーはバッチ無効・StringSchema で作成されること。"""
    mock_client = mocker.MagicMock()
    mocker.patch("pulsar.Client", return_value=mock_client)
    connection = PulsarConnection(SERVICE_URL)

    connection.new_producer("persistent://public/default/t", SchemaType.STRING)

    args, kwargs = mock_client.create_producer.call_args
    assert args == ("persistent://public/default/t",)
    assert kwargs["batching_enabled"] is False
    assert isinstance(kwargs["schema"], StringSchema)


def test_new_producer_primitive_schema_encodes(mocker) -> None:
    """プリミティブ型は標準のバイナリ表現でエンコードされること。"""
    mock_client = mocker.MagicMock()
    mocker.patch("pulsar.Client", return_value=mock_client)
    connection = PulsarConnection(SERVICE_URL)

    connection.new_producer("t", SchemaType.INT32)

    schema = mock_client.create_producer.call_args.kwargs["schema"]
    assert isinstance(schema, BytesSchema)
    assert schema.encode(5) == b"\x00\x00\x00\x05"
    assert schema.decode(b"\x00\x00\x00\x05") == 5


def test_new_producer_avro(mocker) -> None:
    """AVRO はレコード型の AvroSchema で作成されること。"""
    mock_client = mocker.MagicMock()
    mocker.patch("pulsar.Client", return_value=mock_client)
    connection = PulsarConnection(SERVICE_URL)

    connection.new_producer("t", SchemaType.AVRO, Order)

    schema = mock_client.create_producer.call_args.kwargs["schema"]
    assert isinstance(schema, AvroSchema)


def test_new_producer_avro_without_record_type(mocker) -> None:
    """AVRO でレコード型がない場合に INVALID_CONFIGURATION となること。"""
    mock_client = mocker.MagicMock()
    mocker.patch("pulsar.Client", return_value=mock_client)
    connection = PulsarConnection(SERVICE_URL)

    with pytest.raises(PulsarHarnessError) as exc_info:
        connection.new_producer("t", SchemaType.AVRO)
    assert exc_info.value.code == PulsarHarnessErrorCodes.INVALID_CONFIGURATION
    mock_client.create_producer.assert_not_called()


def test_producer_publish_returns_position(mocker) -> None:
    """send の MessageId が Position に変換されること。"""
    mock_client = mocker.MagicMock()
    mock_client.create_producer.return_value.send.return_value = FakeMessageId(12, 3)
    mocker.patch("pulsar.Client", return_value=mock_client)
    connection = PulsarConnection(SERVICE_URL)

    with connection.new_producer("t", SchemaType.STRING) as producer:
        position = producer.publish("hello")
        producer.flush()

    raw = mock_client.create_producer.return_value
    raw.send.assert_called_once_with("hello")
    raw.flush.assert_called_once()
    raw.close.assert_called_once()
    assert position == Position(ledger_id=12, entry_id=3)


def test_new_reader_is_inclusive(mocker) -> None:
    """リーダーは開始位置を含めて読み取ること。"""
    mock_client = mocker.MagicMock()
    mocker.patch("pulsar.Client", return_value=mock_client)
    connection = PulsarConnection(SERVICE_URL)

    connection.new_reader("t", Position.EARLIEST, SchemaType.STRING)

    args, kwargs = mock_client.create_reader.call_args
    assert args == ("t", pulsar.MessageId.earliest)
    assert kwargs["start_message_id_inclusive"] is True
    assert isinstance(kwargs["schema"], StringSchema)


def test_reader_read_next(mocker) -> None:
    """読み取ったメッセージの値と位置が返ること。"""
    mock_client = mocker.MagicMock()
    message = mocker.MagicMock()
    message.value.return_value = b"payload"
    message.message_id.return_value = FakeMessageId(5, 0, partition=1)
    mock_client.create_reader.return_value.read_next.return_value = message
    mocker.patch("pulsar.Client", return_value=mock_client)
    connection = PulsarConnection(SERVICE_URL)

    with connection.new_reader("t", Position.EARLIEST) as reader:
        value, position = reader.read_next()

    assert value == b"payload"
    assert position == Position(ledger_id=5, entry_id=0, partition=1)
    mock_client.create_reader.return_value.close.assert_called_once()


def test_connection_close(mocker) -> None:
    """close で pulsar.Client が閉じられること。"""
    mock_client = mocker.MagicMock()
    mocker.patch("pulsar.Client", return_value=mock_client)
    with PulsarConnection(SERVICE_URL):
        pass
    mock_client.close.assert_called_once()


def test_connect_failure_is_wrapped(mocker) -> None:
    """クライアント作成失敗が CONNECTION_FAILED にラップされること。"""
    mocker.patch("pulsar.Client", side_effect=ValueError("invalid service url"))
    config = PulsarConfig(service_url="bogus", admin_url="http://localhost:8080")
    with pytest.raises(PulsarHarnessError) as exc_info:
        connect(config)
    assert exc_info.value.code == PulsarHarnessErrorCodes.CONNECTION_FAILED
    assert "invalid service url" in str(exc_info.value)
