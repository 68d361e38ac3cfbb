"""型付きメッセージ発行"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

import structlog

from . import pulsar_client
from .client import BrokerConnection, TypedProducer
from .exceptions import PublishError, PulsarHarnessError, PulsarHarnessErrorCodes
from .models import ProducedRecord, PulsarConfig, SchemaType
from .topic import TopicName

logger = structlog.stdlib.get_logger(__name__)


class TypedProducerFactory:
    """スキーマタイプに応じたプロデューサーを作成し、値を順に発行する。

    1 回の呼び出しで接続とプロデューサーを 1 つずつ確保し、戻る前に必ず解放する。
    """

    def __init__(
        self,
        config: PulsarConfig,
        connect: Callable[[PulsarConfig], BrokerConnection] = pulsar_client.connect,
    ) -> None:
        self._config = config
        self._connect = connect

    def produce_typed(
        self,
        topic: str,
        schema_type: SchemaType | str,
        values: Iterable[Any],
        record_type: type | None = None,
        partition: int | None = None,
    ) -> list[ProducedRecord[Any]]:
        """values を入力順に発行し、各値と割り当てられた位置を返す。

        Args:
            topic: 発行先トピック
            schema_type: スキーマタイプ（AVRO の場合は record_type 必須）
            values: 発行する値の列（空でもよい）
            record_type: AVRO のレコード型（pulsar.schema.Record サブクラス）
            partition: 指定時はそのパーティションのサブトピックへ発行する

        Raises:
            PulsarHarnessError: 入力不正（ネットワーク I/O 前に送出）
            PublishError: index 番目の発行に失敗した場合
        """
        tag = SchemaType.parse(schema_type)
        if tag is SchemaType.AVRO and record_type is None:
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.INVALID_CONFIGURATION,
                message=f"AVRO producer for {topic} requires a record type",
            )
        if values is None:
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.INVALID_ARGUMENT,
                message="values cannot be None",
            )
        name = TopicName.get(topic)
        if partition is not None:
            name = name.partition(partition)
        target = str(name)
        pending = list(values)

        connection = self._connect(self._config)
        # 解放手順は flush → close producer → close connection の順
        steps: list[tuple[str, Callable[[], None]]] = [("close connection", connection.close)]
        try:
            producer = self._new_producer(connection, target, tag, record_type)
            steps[:0] = [("flush", producer.flush), ("close producer", producer.close)]
            records = self._publish_all(producer, target, pending)
        except BaseException as e:
            _release(steps, target, in_flight=e)
            raise
        _release(steps, target)
        return records

    def _new_producer(
        self,
        connection: BrokerConnection,
        target: str,
        tag: SchemaType,
        record_type: type | None,
    ) -> TypedProducer:
        try:
            return connection.new_producer(target, tag, record_type)
        except PulsarHarnessError:
            raise
        except Exception as e:
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.CONNECTION_FAILED,
                message=f"Failed to create {tag} producer for {target}: {e}",
                cause=e,
            ) from e

    def _publish_all(
        self,
        producer: TypedProducer,
        target: str,
        pending: list[Any],
    ) -> list[ProducedRecord[Any]]:
        produced: list[ProducedRecord[Any]] = []
        for index, value in enumerate(pending):
            try:
                position = producer.publish(value)
            except Exception as e:
                raise PublishError(target, index, list(produced), cause=e) from e
            logger.info("message sent", topic=target, value=value, position=str(position))
            produced.append(ProducedRecord(value=value, position=position))
        return produced


def _release(
    steps: list[tuple[str, Callable[[], None]]],
    target: str,
    in_flight: BaseException | None = None,
) -> None:
    """解放手順をすべて実行する。ある手順が失敗しても残りの手順は実行する。

    in_flight がある場合、解放時の失敗はログに残すだけで送出しない。
    ない場合は最初の失敗を PUBLISH_FAILED として送出する。
    """
    failed: tuple[str, Exception] | None = None
    for step, action in steps:
        try:
            action()
        except Exception as e:
            if in_flight is None and failed is None:
                failed = (step, e)
            else:
                logger.warning("release step failed", topic=target, step=step, error=str(e))
    if failed is not None:
        step, cause = failed
        raise PulsarHarnessError(
            code=PulsarHarnessErrorCodes.PUBLISH_FAILED,
            message=f"Failed to {step} for {target}: {cause}",
            cause=cause,
        ) from cause
