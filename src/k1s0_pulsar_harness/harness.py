"""テストシナリオ向け Pulsar ハーネス"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from . import admin, pulsar_client
from .client import AdminSession, BrokerConnection
from .config import load
from .exceptions import PulsarHarnessError, PulsarHarnessErrorCodes
from .logger import new_logger
from .models import (
    Position,
    ProducedRecord,
    PulsarConfig,
    RegistrationResult,
    SchemaDescriptor,
    SchemaType,
)
from .offsets import OffsetResolver
from .producer import TypedProducerFactory
from .registrar import SchemaRegistrar


class PulsarTestHarness:
    """TypedProducerFactory / OffsetResolver / SchemaRegistrar を 1 つの設定で束ねる。

    使用例::

        harness = PulsarTestHarness(config)
        harness.register_schema("orders", SchemaDescriptor.for_type(SchemaType.STRING))
        records = harness.produce_typed("orders", SchemaType.STRING, ["a", "a", "b"])
        assert harness.resolve_earliest({"orders"})["orders"] == records[0].position
    """

    def __init__(
        self,
        config: PulsarConfig,
        connect: Callable[[PulsarConfig], BrokerConnection] = pulsar_client.connect,
        connect_admin: Callable[[PulsarConfig], AdminSession] = admin.connect_admin,
    ) -> None:
        self._config = config
        self._connect = connect
        self.producers = TypedProducerFactory(config, connect=connect)
        self.offsets = OffsetResolver(config, connect=connect, connect_admin=connect_admin)
        self.schemas = SchemaRegistrar(config, connect_admin=connect_admin)

    @classmethod
    def from_config(
        cls,
        base_path: str | Path,
        env_path: str | Path | None = None,
        overrides: dict[str, Any] | None = None,
        connect: Callable[[PulsarConfig], BrokerConnection] = pulsar_client.connect,
        connect_admin: Callable[[PulsarConfig], AdminSession] = admin.connect_admin,
    ) -> PulsarTestHarness:
        """YAML 設定ファイルからハーネスを作成する。

        observability.log に従ってロガーを設定してから pulsar セクションで接続先を決める。
        """
        harness_config = load(base_path, env_path, overrides)
        log = harness_config.observability.log
        new_logger(log.level, log.format)
        return cls(
            harness_config.to_pulsar_config(),
            connect=connect,
            connect_admin=connect_admin,
        )

    @property
    def config(self) -> PulsarConfig:
        return self._config

    def produce_typed(
        self,
        topic: str,
        schema_type: SchemaType | str,
        values: Iterable[Any],
        record_type: type | None = None,
        partition: int | None = None,
    ) -> list[ProducedRecord[Any]]:
        return self.producers.produce_typed(
            topic, schema_type, values, record_type=record_type, partition=partition
        )

    def resolve_earliest(self, topics: Iterable[str]) -> dict[str, Position]:
        return self.offsets.resolve_earliest(topics)

    def resolve_latest(self, topics: Iterable[str]) -> dict[str, Position]:
        return self.offsets.resolve_latest(topics)

    def topic_sizes(self, namespace: str | None = None) -> list[tuple[str, Position]]:
        return self.offsets.topic_sizes(namespace)

    def register_schema(self, topic: str, descriptor: SchemaDescriptor) -> RegistrationResult:
        return self.schemas.register_schema(topic, descriptor)

    def send_messages(
        self,
        topic: str,
        messages: Iterable[str],
        partition: int | None = None,
    ) -> list[tuple[str, Position]]:
        """文字列を UTF-8 バイト列として発行し、(文字列, 位置) の列を返す。"""
        texts = list(messages)
        records = self.producers.produce_typed(
            topic,
            SchemaType.BYTES,
            [text.encode("utf-8") for text in texts],
            partition=partition,
        )
        return [(text, record.position) for text, record in zip(texts, records, strict=True)]

    def send_message_counts(
        self,
        topic: str,
        message_counts: Mapping[str, int],
        partition: int | None = None,
    ) -> list[tuple[str, Position]]:
        """各メッセージを指定回数ずつ発行する。"""
        messages = [text for text, count in message_counts.items() for _ in range(count)]
        return self.send_messages(topic, messages, partition=partition)

    def read_messages(
        self,
        topic: str,
        start: Position,
        count: int,
        schema_type: SchemaType | str = SchemaType.BYTES,
        record_type: type | None = None,
    ) -> list[ProducedRecord[Any]]:
        """start（を含む）から count 件読み取る。count 件揃うまでブロックする。"""
        tag = SchemaType.parse(schema_type)
        if count < 0:
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.INVALID_ARGUMENT,
                message=f"count must be >= 0: {count}",
            )
        connection = self._connect(self._config)
        try:
            with connection.new_reader(topic, start, tag, record_type) as reader:
                records: list[ProducedRecord[Any]] = []
                for _ in range(count):
                    value, position = reader.read_next()
                    records.append(ProducedRecord(value=value, position=position))
                return records
        except PulsarHarnessError:
            raise
        except Exception as e:
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.READ_FAILED,
                message=f"Failed to read {count} message(s) from {topic}: {e}",
                cause=e,
            ) from e
        finally:
            connection.close()
