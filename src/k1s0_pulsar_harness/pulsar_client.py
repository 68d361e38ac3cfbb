"""pulsar-client を使ったデータプレーン接続"""

from __future__ import annotations

import math
from typing import Any

from .client import BrokerConnection, PositionedReader, TypedProducer
from .codec import Codec, codec_for
from .exceptions import PulsarHarnessError, PulsarHarnessErrorCodes
from .models import Position, PulsarConfig, SchemaType


def _schema_for(schema_type: SchemaType, record_type: type | None) -> Any:  # noqa: ANN401
    """スキーマタイプに対応する pulsar.schema のスキーマを返す。"""
    from pulsar.schema import AvroSchema, BytesSchema, StringSchema

    class _PrimitiveSchema(BytesSchema):
        """codec のバイナリ表現をそのまま載せるスキーマ。"""

        def __init__(self, codec: Codec) -> None:
            super().__init__()
            self._codec = codec

        def encode(self, obj: Any) -> bytes:  # noqa: ANN401
            return self._codec.encode(obj)

        def decode(self, data: bytes) -> Any:  # noqa: ANN401
            return self._codec.decode(data)

    match schema_type:
        case SchemaType.STRING:
            return StringSchema()
        case SchemaType.BYTES:
            return BytesSchema()
        case SchemaType.AVRO:
            if record_type is None:
                raise PulsarHarnessError(
                    code=PulsarHarnessErrorCodes.INVALID_CONFIGURATION,
                    message="AVRO schema requires a record type",
                )
            return AvroSchema(record_type)
        case _:
            return _PrimitiveSchema(codec_for(schema_type))


class PulsarTypedProducer(TypedProducer):
    """pulsar.Producer のラッパー。"""

    def __init__(self, producer: Any) -> None:  # noqa: ANN401
        self._producer = producer

    def publish(self, value: Any) -> Position:  # noqa: ANN401
        return Position.from_message_id(self._producer.send(value))

    def flush(self) -> None:
        self._producer.flush()

    def close(self) -> None:
        self._producer.close()


class PulsarPositionedReader(PositionedReader):
    """pulsar.Reader のラッパー。"""

    def __init__(self, reader: Any) -> None:  # noqa: ANN401
        self._reader = reader

    def read_next(self) -> tuple[Any, Position]:
        msg = self._reader.read_next()
        return msg.value(), Position.from_message_id(msg.message_id())

    def close(self) -> None:
        self._reader.close()


class PulsarConnection(BrokerConnection):
    """pulsar.Client を使ったデータプレーン接続。"""

    def __init__(self, service_url: str, auth_token: str = "", timeout_seconds: float = 30.0) -> None:
        import pulsar

        # operation_timeout_seconds は整数秒。1 秒未満は切り上げる
        kwargs: dict[str, Any] = {
            "operation_timeout_seconds": max(1, math.ceil(timeout_seconds)),
        }
        if auth_token:
            kwargs["authentication"] = pulsar.AuthenticationToken(auth_token)
        self._client = pulsar.Client(service_url, **kwargs)

    def new_producer(
        self,
        topic: str,
        schema_type: SchemaType,
        record_type: type | None = None,
    ) -> TypedProducer:
        producer = self._client.create_producer(
            topic,
            schema=_schema_for(schema_type, record_type),
            batching_enabled=False,
        )
        return PulsarTypedProducer(producer)

    def new_reader(
        self,
        topic: str,
        start: Position,
        schema_type: SchemaType = SchemaType.BYTES,
        record_type: type | None = None,
    ) -> PositionedReader:
        reader = self._client.create_reader(
            topic,
            start.to_message_id(),
            schema=_schema_for(schema_type, record_type),
            start_message_id_inclusive=True,
        )
        return PulsarPositionedReader(reader)

    def close(self) -> None:
        self._client.close()


def connect(config: PulsarConfig) -> BrokerConnection:
    """PulsarConfig からデータプレーン接続を作成する。"""
    try:
        return PulsarConnection(
            config.service_url,
            auth_token=config.auth_token,
            timeout_seconds=config.timeout_seconds,
        )
    except Exception as e:
        raise PulsarHarnessError(
            code=PulsarHarnessErrorCodes.CONNECTION_FAILED,
            message=f"Failed to connect to {config.service_url}: {e}",
            cause=e,
        ) from e
