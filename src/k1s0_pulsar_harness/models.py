"""pulsar_harness データモデル"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar, Generic, TypeVar

from .exceptions import PulsarHarnessError, PulsarHarnessErrorCodes

T = TypeVar("T")

_MAX_LONG = 2**63 - 1


class SchemaType(StrEnum):
    """スキーマタイプ。値はブローカーのスキーマレジストリ上の型名。"""

    BOOLEAN = "BOOLEAN"
    BYTES = "BYTES"
    DATE = "DATE"
    STRING = "STRING"
    TIMESTAMP = "TIMESTAMP"
    INT8 = "INT8"
    INT16 = "INT16"
    INT32 = "INT32"
    INT64 = "INT64"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    AVRO = "AVRO"

    @classmethod
    def parse(cls, value: SchemaType | str) -> SchemaType:
        """タグまたは型名（大文字小文字を区別しない）から SchemaType を得る。"""
        if isinstance(value, SchemaType):
            return value
        if isinstance(value, str):
            try:
                return cls(value.upper())
            except ValueError:
                pass
        raise PulsarHarnessError(
            code=PulsarHarnessErrorCodes.UNSUPPORTED_SCHEMA_TYPE,
            message=f"not supported type {value!r}",
        )


@dataclass(frozen=True, order=True)
class Position:
    """ブローカーが割り当てるメッセージ位置（MessageId）。

    ledger_id, entry_id, batch_index, partition の順で全順序を持つ。
    entry_id == -1 は「まだエントリがない」ことを示す。
    """

    ledger_id: int
    entry_id: int
    batch_index: int = -1
    partition: int = -1

    EARLIEST: ClassVar[Position]
    LATEST: ClassVar[Position]

    @property
    def exists(self) -> bool:
        """実在するエントリを指しているか。"""
        return self.entry_id != -1

    def __str__(self) -> str:
        text = f"{self.ledger_id}:{self.entry_id}:{self.partition}"
        if self.batch_index >= 0:
            text = f"{text}:{self.batch_index}"
        return text

    @classmethod
    def parse(cls, text: str) -> Position:
        """str() 形式から Position を復元する。"""
        parts = text.split(":")
        if len(parts) not in (3, 4):
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.INVALID_ARGUMENT,
                message=f"Invalid position: {text!r}",
            )
        try:
            numbers = [int(p) for p in parts]
        except ValueError as e:
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.INVALID_ARGUMENT,
                message=f"Invalid position: {text!r}",
                cause=e,
            ) from e
        batch_index = numbers[3] if len(numbers) == 4 else -1
        return cls(
            ledger_id=numbers[0],
            entry_id=numbers[1],
            partition=numbers[2],
            batch_index=batch_index,
        )

    @classmethod
    def from_message_id(cls, mid: Any) -> Position:  # noqa: ANN401
        """pulsar.MessageId 互換オブジェクトから変換する。"""
        return cls(
            ledger_id=mid.ledger_id(),
            entry_id=mid.entry_id(),
            partition=mid.partition(),
            batch_index=mid.batch_index(),
        )

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Position:
        """管理 REST API の lastMessageId レスポンスから変換する。"""
        return cls(
            ledger_id=int(data["ledgerId"]),
            entry_id=int(data["entryId"]),
            partition=int(data.get("partitionIndex", -1)),
            batch_index=int(data.get("batchIndex", -1)),
        )

    def to_message_id(self) -> Any:  # noqa: ANN401
        """pulsar.MessageId に変換する。"""
        import pulsar

        if self == Position.EARLIEST:
            return pulsar.MessageId.earliest
        if self == Position.LATEST:
            return pulsar.MessageId.latest
        return pulsar.MessageId(
            partition=self.partition,
            ledger_id=self.ledger_id,
            entry_id=self.entry_id,
            batch_index=self.batch_index,
        )


Position.EARLIEST = Position(ledger_id=-1, entry_id=-1)
Position.LATEST = Position(ledger_id=_MAX_LONG, entry_id=_MAX_LONG)


def seekable_latest(raw: Position) -> Position:
    """lastMessageId を再開位置として安全な値に正規化する。

    エントリが一件もない（entry_id == -1）場合は次に書き込まれるエントリを返す。
    """
    if raw.exists:
        return raw
    return Position(
        ledger_id=raw.ledger_id,
        entry_id=raw.entry_id + 1,
        partition=raw.partition,
    )


@dataclass(frozen=True)
class ProducedRecord(Generic[T]):
    """発行した値と割り当てられた位置の組。"""

    value: T
    position: Position


@dataclass(frozen=True)
class SchemaDescriptor:
    """スキーマレジストリへ登録するスキーマ情報。"""

    type: str
    schema: bytes = b""
    properties: dict[str, str] = field(default_factory=dict)

    @property
    def schema_text(self) -> str:
        return self.schema.decode("utf-8")

    def to_payload(self) -> dict[str, Any]:
        """管理 REST API の PostSchemaPayload 形式に変換する。"""
        return {
            "type": self.type,
            "schema": self.schema_text,
            "properties": dict(self.properties),
        }

    @classmethod
    def for_type(cls, schema_type: SchemaType | str) -> SchemaDescriptor:
        """プリミティブ型のスキーマ情報（スキーマ定義は空）。"""
        tag = SchemaType.parse(schema_type)
        if tag is SchemaType.AVRO:
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.INVALID_CONFIGURATION,
                message="AVRO schema requires a record type; use for_record()",
            )
        return cls(type=tag.value)

    @classmethod
    def for_record(
        cls,
        record_type: Any,  # noqa: ANN401
        properties: dict[str, str] | None = None,
    ) -> SchemaDescriptor:
        """pulsar.schema.Record サブクラスから AVRO スキーマ情報を作る。"""
        definition = record_type.schema()
        return cls(
            type=SchemaType.AVRO.value,
            schema=json.dumps(definition).encode("utf-8"),
            properties=dict(properties or {}),
        )


class RegistrationResult(StrEnum):
    """スキーマ登録結果。"""

    REGISTERED = "REGISTERED"
    SKIPPED = "SKIPPED"


@dataclass
class PulsarConfig:
    """Pulsar 接続設定。"""

    service_url: str
    admin_url: str
    namespace: str = "public/default"
    timeout_seconds: float = 30.0
    auth_token: str = ""

    def __post_init__(self) -> None:
        if not self.service_url:
            raise ValueError("service_url cannot be empty")
        if not self.admin_url:
            raise ValueError("admin_url cannot be empty")
