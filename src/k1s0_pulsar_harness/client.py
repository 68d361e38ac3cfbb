"""ブローカークライアント抽象基底クラス

データプレーン（発行・読み取り）と管理プレーン（メタデータ・スキーマ）の協調インターフェース。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .models import Position, SchemaDescriptor, SchemaType


class TypedProducer(ABC):
    """スキーマに束縛されたプロデューサー抽象基底クラス。"""

    @abstractmethod
    def publish(self, value: Any) -> Position:  # noqa: ANN401
        """値を発行し、ブローカーの確認応答を待って位置を返す。"""
        ...

    @abstractmethod
    def flush(self) -> None:
        """バッファ済みのメッセージを送信する。"""
        ...

    @abstractmethod
    def close(self) -> None:
        """プロデューサーを閉じる。"""
        ...

    def __enter__(self) -> TypedProducer:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class PositionedReader(ABC):
    """指定位置から読み取るリーダー抽象基底クラス。"""

    @abstractmethod
    def read_next(self) -> tuple[Any, Position]:
        """次のメッセージを読み取る（ブロッキング）。値と位置を返す。"""
        ...

    @abstractmethod
    def close(self) -> None:
        """リーダーを閉じる。"""
        ...

    def __enter__(self) -> PositionedReader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class BrokerConnection(ABC):
    """データプレーン接続抽象基底クラス。"""

    @abstractmethod
    def new_producer(
        self,
        topic: str,
        schema_type: SchemaType,
        record_type: type | None = None,
    ) -> TypedProducer:
        """スキーマ付きプロデューサーを作成する。"""
        ...

    @abstractmethod
    def new_reader(
        self,
        topic: str,
        start: Position,
        schema_type: SchemaType = SchemaType.BYTES,
        record_type: type | None = None,
    ) -> PositionedReader:
        """start から読み取るリーダーを作成する。"""
        ...

    @abstractmethod
    def close(self) -> None:
        """接続を閉じる。"""
        ...

    def __enter__(self) -> BrokerConnection:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class AdminSession(ABC):
    """管理プレーンセッション抽象基底クラス。"""

    @abstractmethod
    def last_position(self, topic: str) -> Position:
        """トピックの最終発行位置（生の値）を取得する。"""
        ...

    @abstractmethod
    def list_topics(self, namespace: str) -> list[str]:
        """名前空間内のトピック一覧を取得する。"""
        ...

    @abstractmethod
    def register_schema(self, topic: str, descriptor: SchemaDescriptor) -> None:
        """スキーマを登録する。トピックが存在しなければ NOT_FOUND の AdminError。"""
        ...

    @abstractmethod
    def close(self) -> None:
        """セッションを閉じる。"""
        ...

    def __enter__(self) -> AdminSession:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
