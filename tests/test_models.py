"""pulsar_harness モデルのユニットテスト"""

import json

import pytest
from conftest import FakeMessageId
from k1s0_pulsar_harness.exceptions import PulsarHarnessError, PulsarHarnessErrorCodes
from k1s0_pulsar_harness.models import (
    Position,
    PulsarConfig,
    RegistrationResult,
    SchemaDescriptor,
    SchemaType,
    seekable_latest,
)


def test_schema_type_values() -> None:
    """SchemaType の値がレジストリの型名であること。"""
    assert SchemaType.BOOLEAN.value == "BOOLEAN"
    assert SchemaType.INT64.value == "INT64"
    assert SchemaType.AVRO.value == "AVRO"
    assert len(SchemaType) == 12


def test_schema_type_parse_case_insensitive() -> None:
    """型名から大文字小文字を問わず SchemaType が得られること。"""
    assert SchemaType.parse("string") is SchemaType.STRING
    assert SchemaType.parse("Timestamp") is SchemaType.TIMESTAMP
    assert SchemaType.parse(SchemaType.DOUBLE) is SchemaType.DOUBLE


@pytest.mark.parametrize("value", ["JSON", "PROTOBUF", "", 42, None])
def test_schema_type_parse_unsupported(value: object) -> None:
    """未対応の型で UNSUPPORTED_SCHEMA_TYPE が発生すること。"""
    with pytest.raises(PulsarHarnessError) as exc_info:
        SchemaType.parse(value)  # type: ignore[arg-type]
    assert exc_info.value.code == PulsarHarnessErrorCodes.UNSUPPORTED_SCHEMA_TYPE


def test_position_str() -> None:
    """Position の文字列表現が ledger:entry:partition[:batch] であること。"""
    assert str(Position(ledger_id=12, entry_id=3)) == "12:3:-1"
    assert str(Position(ledger_id=12, entry_id=3, partition=2)) == "12:3:2"
    assert str(Position(ledger_id=12, entry_id=3, batch_index=0)) == "12:3:-1:0"


def test_position_parse_roundtrip() -> None:
    """str() の結果から同じ Position が復元できること。"""
    for position in (
        Position(ledger_id=7, entry_id=0),
        Position(ledger_id=7, entry_id=9, partition=1, batch_index=4),
        Position.EARLIEST,
    ):
        assert Position.parse(str(position)) == position


@pytest.mark.parametrize("text", ["", "1:2", "a:b:c", "1:2:3:4:5"])
def test_position_parse_invalid(text: str) -> None:
    """不正な文字列で INVALID_ARGUMENT が発生すること。"""
    with pytest.raises(PulsarHarnessError) as exc_info:
        Position.parse(text)
    assert exc_info.value.code == PulsarHarnessErrorCodes.INVALID_ARGUMENT


def test_position_ordering() -> None:
    """ledger → entry → batch の順で比較されること。"""
    a = Position(ledger_id=5, entry_id=1)
    b = Position(ledger_id=5, entry_id=2)
    c = Position(ledger_id=6, entry_id=0)
    assert Position.EARLIEST < a < b < c < Position.LATEST
    assert Position(ledger_id=5, entry_id=1, batch_index=0) < Position(
        ledger_id=5, entry_id=1, batch_index=1
    )


def test_position_from_message_id() -> None:
    """pulsar.MessageId 互換オブジェクトから変換できること。"""
    position = Position.from_message_id(FakeMessageId(10, 4, partition=2, batch=1))
    assert position == Position(ledger_id=10, entry_id=4, partition=2, batch_index=1)


def test_position_from_json() -> None:
    """lastMessageId レスポンスから変換できること。"""
    position = Position.from_json({"ledgerId": 8, "entryId": -1, "partitionIndex": -1})
    assert position == Position(ledger_id=8, entry_id=-1)
    assert position.exists is False


def test_seekable_latest_empty_topic() -> None:
    """entry_id == -1 の場合は次に書き込まれるエントリに進めること。"""
    raw = Position(ledger_id=8, entry_id=-1, partition=3)
    normalized = seekable_latest(raw)
    assert normalized == Position(ledger_id=8, entry_id=0, partition=3)
    assert normalized != raw
    assert normalized > Position.EARLIEST


def test_seekable_latest_existing_entry_unchanged() -> None:
    """実在するエントリを指す場合はそのまま返すこと。"""
    raw = Position(ledger_id=8, entry_id=0)
    assert seekable_latest(raw) is raw
    batched = Position(ledger_id=8, entry_id=5, batch_index=2)
    assert seekable_latest(batched) is batched


def test_schema_descriptor_payload() -> None:
    """PostSchemaPayload 形式に変換できること。"""
    descriptor = SchemaDescriptor(
        type="AVRO",
        schema=b'{"type":"record","name":"U","fields":[]}',
        properties={"owner": "k1s0"},
    )
    payload = descriptor.to_payload()
    assert payload == {
        "type": "AVRO",
        "schema": '{"type":"record","name":"U","fields":[]}',
        "properties": {"owner": "k1s0"},
    }


def test_schema_descriptor_for_type() -> None:
    """プリミティブ型のスキーマ情報はスキーマ定義が空であること。"""
    descriptor = SchemaDescriptor.for_type("int32")
    assert descriptor.type == "INT32"
    assert descriptor.schema == b""
    assert descriptor.properties == {}


def test_schema_descriptor_for_type_avro_raises() -> None:
    """AVRO は for_type で作れないこと。"""
    with pytest.raises(PulsarHarnessError) as exc_info:
        SchemaDescriptor.for_type(SchemaType.AVRO)
    assert exc_info.value.code == PulsarHarnessErrorCodes.INVALID_CONFIGURATION


def test_schema_descriptor_for_record() -> None:
    """pulsar.schema.Record から AVRO スキーマ情報が作れること。"""
    from pulsar.schema import Integer, Record, String

    class User(Record):
        name = String()
        age = Integer()

    descriptor = SchemaDescriptor.for_record(User, properties={"v": "1"})
    definition = json.loads(descriptor.schema_text)
    assert descriptor.type == "AVRO"
    assert definition["type"] == "record"
    assert definition["name"] == "User"
    assert {f["name"] for f in definition["fields"]} == {"name", "age"}
    assert descriptor.properties == {"v": "1"}


def test_registration_result_values() -> None:
    """RegistrationResult の値が正しいこと。"""
    assert RegistrationResult.REGISTERED.value == "REGISTERED"
    assert RegistrationResult.SKIPPED.value == "SKIPPED"


def test_pulsar_config_defaults() -> None:
    """PulsarConfig のデフォルト値確認。"""
    config = PulsarConfig(service_url="pulsar://localhost:6650", admin_url="http://localhost:8080")
    assert config.namespace == "public/default"
    assert config.timeout_seconds == 30.0
    assert config.auth_token == ""


def test_pulsar_config_empty_url_raises() -> None:
    """URL が空の場合に ValueError が発生すること。"""
    with pytest.raises(ValueError, match="service_url"):
        PulsarConfig(service_url="", admin_url="http://localhost:8080")
    with pytest.raises(ValueError, match="admin_url"):
        PulsarConfig(service_url="pulsar://localhost:6650", admin_url="")
