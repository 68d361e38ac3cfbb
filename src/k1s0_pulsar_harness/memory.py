"""InMemoryBroker 実装"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from .client import AdminSession, BrokerConnection, PositionedReader, TypedProducer
from .codec import codec_for
from .exceptions import AdminError, PulsarHarnessError, PulsarHarnessErrorCodes
from .models import Position, PulsarConfig, SchemaDescriptor, SchemaType
from .topic import PARTITION_SUFFIX, TopicName


@dataclass
class _Entry:
    payload: Any
    position: Position


@dataclass
class _Topic:
    ledger_id: int
    partition: int
    entries: list[_Entry] = field(default_factory=list)
    schemas: list[SchemaDescriptor] = field(default_factory=list)


class InMemoryBroker:
    """テスト用インメモリブローカー。データプレーンと管理プレーンの両方を提供する。

    すべての呼び出しを calls に記録し、ハンドルの open/close を数える。
    """

    def __init__(self) -> None:
        self._topics: dict[str, _Topic] = {}
        self._next_ledger = 1
        self._failures: dict[tuple[str, str], tuple[int, Exception]] = {}
        self._op_counts: Counter[tuple[str, str]] = Counter()
        self.calls: list[tuple[str, str]] = []
        self.opened: Counter[str] = Counter()
        self.closed: Counter[str] = Counter()

    # ---------- 状態操作 ----------

    def create_topic(self, topic: str) -> str:
        """空のトピックを作成して正規化名を返す。既存なら何もしない。"""
        return self._ensure(topic)

    def topic_exists(self, topic: str) -> bool:
        return str(TopicName.get(topic)) in self._topics

    def schemas(self, topic: str) -> list[SchemaDescriptor]:
        """トピックに登録されたスキーマの履歴を返す。"""
        entry = self._topics.get(str(TopicName.get(topic)))
        return list(entry.schemas) if entry else []

    def inject_failure(self, operation: str, topic: str, error: Exception, after: int = 0) -> None:
        """topic への operation が after 回成功した後に error を送出させる。

        operation: "publish" / "read" / "last_position" / "register_schema" / "new_producer"
        """
        self._failures[(operation, str(TopicName.get(topic)))] = (after, error)

    @property
    def open_handles(self) -> int:
        """close されていないハンドル数。"""
        return sum(self.opened.values()) - sum(self.closed.values())

    # ---------- 接続 ----------

    def connect(self, config: PulsarConfig | None = None) -> BrokerConnection:
        self._record("connect", config.service_url if config else "")
        self.opened["connection"] += 1
        return _InMemoryConnection(self)

    def connect_admin(self, config: PulsarConfig | None = None) -> AdminSession:
        self._record("connect_admin", config.admin_url if config else "")
        self.opened["admin"] += 1
        return _InMemoryAdminSession(self)

    # ---------- 内部 ----------

    def _record(self, operation: str, target: str) -> None:
        self.calls.append((operation, target))
        key = (operation, target)
        failure = self._failures.get(key)
        count = self._op_counts[key]
        self._op_counts[key] += 1
        if failure is not None and count >= failure[0]:
            raise failure[1]

    def _ensure(self, topic: str) -> str:
        name = str(TopicName.get(topic))
        if name not in self._topics:
            partition = -1
            if PARTITION_SUFFIX in name:
                partition = int(name.rsplit(PARTITION_SUFFIX, 1)[1])
            self._topics[name] = _Topic(ledger_id=self._next_ledger, partition=partition)
            self._next_ledger += 1
        return name

    def _lookup(self, topic: str) -> tuple[str, _Topic]:
        name = str(TopicName.get(topic))
        entry = self._topics.get(name)
        if entry is None:
            raise AdminError(
                code=PulsarHarnessErrorCodes.NOT_FOUND,
                message=f"Topic {name} not found",
                status_code=404,
            )
        return name, entry

    def _append(self, name: str, payload: Any) -> Position:  # noqa: ANN401
        topic = self._topics[name]
        position = Position(
            ledger_id=topic.ledger_id,
            entry_id=len(topic.entries),
            partition=topic.partition,
        )
        topic.entries.append(_Entry(payload=payload, position=position))
        return position


def _encode(schema_type: SchemaType, record_type: type | None, value: Any) -> Any:  # noqa: ANN401
    if schema_type is SchemaType.AVRO:
        if record_type is None or not isinstance(value, record_type):
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.SERIALIZATION_ERROR,
                message=f"AVRO cannot encode {type(value).__name__}",
            )
        return value
    return codec_for(schema_type).encode(value)


def _decode(schema_type: SchemaType, payload: Any) -> Any:  # noqa: ANN401
    if schema_type is SchemaType.AVRO or not isinstance(payload, bytes):
        return payload
    return codec_for(schema_type).decode(payload)


class _InMemoryProducer(TypedProducer):
    def __init__(
        self,
        broker: InMemoryBroker,
        name: str,
        schema_type: SchemaType,
        record_type: type | None,
    ) -> None:
        self._broker = broker
        self._name = name
        self._schema_type = schema_type
        self._record_type = record_type

    def publish(self, value: Any) -> Position:  # noqa: ANN401
        self._broker._record("publish", self._name)
        payload = _encode(self._schema_type, self._record_type, value)
        return self._broker._append(self._name, payload)

    def flush(self) -> None:
        self._broker._record("flush", self._name)

    def close(self) -> None:
        self._broker._record("close_producer", self._name)
        self._broker.closed["producer"] += 1


class _InMemoryReader(PositionedReader):
    def __init__(
        self,
        broker: InMemoryBroker,
        name: str,
        start: Position,
        schema_type: SchemaType,
    ) -> None:
        self._broker = broker
        self._name = name
        self._schema_type = schema_type
        entries = broker._topics[name].entries
        # MessageId 指定はその位置を含む（earliest は先頭から）
        self._cursor = next(
            (i for i, e in enumerate(entries) if e.position >= start),
            len(entries),
        )

    def read_next(self) -> tuple[Any, Position]:
        self._broker._record("read", self._name)
        entries = self._broker._topics[self._name].entries
        if self._cursor >= len(entries):
            raise TimeoutError(f"no message available on {self._name}")
        entry = entries[self._cursor]
        self._cursor += 1
        return _decode(self._schema_type, entry.payload), entry.position

    def close(self) -> None:
        self._broker._record("close_reader", self._name)
        self._broker.closed["reader"] += 1


class _InMemoryConnection(BrokerConnection):
    def __init__(self, broker: InMemoryBroker) -> None:
        self._broker = broker

    def new_producer(
        self,
        topic: str,
        schema_type: SchemaType,
        record_type: type | None = None,
    ) -> TypedProducer:
        name = str(TopicName.get(topic))
        self._broker._record("new_producer", name)
        self._broker._ensure(name)
        self._broker.opened["producer"] += 1
        return _InMemoryProducer(self._broker, name, schema_type, record_type)

    def new_reader(
        self,
        topic: str,
        start: Position,
        schema_type: SchemaType = SchemaType.BYTES,
        record_type: type | None = None,
    ) -> PositionedReader:
        name = str(TopicName.get(topic))
        self._broker._record("new_reader", name)
        self._broker._ensure(name)
        self._broker.opened["reader"] += 1
        return _InMemoryReader(self._broker, name, start, schema_type)

    def close(self) -> None:
        self._broker._record("close_connection", "")
        self._broker.closed["connection"] += 1


class _InMemoryAdminSession(AdminSession):
    def __init__(self, broker: InMemoryBroker) -> None:
        self._broker = broker

    def last_position(self, topic: str) -> Position:
        name = str(TopicName.get(topic))
        self._broker._record("last_position", name)
        _, entry = self._broker._lookup(name)
        if entry.entries:
            return entry.entries[-1].position
        return Position(ledger_id=entry.ledger_id, entry_id=-1, partition=entry.partition)

    def list_topics(self, namespace: str) -> list[str]:
        self._broker._record("list_topics", namespace)
        return [
            name
            for name in self._broker._topics
            if TopicName.get(name).namespace_name == namespace
        ]

    def register_schema(self, topic: str, descriptor: SchemaDescriptor) -> None:
        name = str(TopicName.get(topic))
        self._broker._record("register_schema", name)
        _, entry = self._broker._lookup(name)
        entry.schemas.append(descriptor)

    def close(self) -> None:
        self._broker._record("close_admin", "")
        self._broker.closed["admin"] += 1
