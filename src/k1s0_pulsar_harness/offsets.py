"""トピックの最古・最新位置の解決"""

from __future__ import annotations

from collections.abc import Callable, Iterable

import structlog

from . import admin, pulsar_client
from .client import AdminSession, BrokerConnection
from .exceptions import ResolutionError
from .models import Position, PulsarConfig, seekable_latest

logger = structlog.stdlib.get_logger(__name__)


class OffsetResolver:
    """トピック群の読み取り開始・終了位置を解決する。

    いずれか 1 トピックでも失敗した場合は ResolutionError を送出し、部分的な結果は返さない。
    """

    def __init__(
        self,
        config: PulsarConfig,
        connect: Callable[[PulsarConfig], BrokerConnection] = pulsar_client.connect,
        connect_admin: Callable[[PulsarConfig], AdminSession] = admin.connect_admin,
    ) -> None:
        self._config = config
        self._connect = connect
        self._connect_admin = connect_admin

    def resolve_earliest(self, topics: Iterable[str]) -> dict[str, Position]:
        """各トピックの先頭レコードの位置を返す。

        earliest に位置付けたリーダーで 1 件読み取る。レコードが 1 件もないトピックでは
        最初のレコードが発行されるまでブロックするため、呼び出し側でタイムアウトを設けること。
        """
        names = list(dict.fromkeys(topics))
        connection = self._connect(self._config)
        try:
            result: dict[str, Position] = {}
            for topic in names:
                try:
                    with connection.new_reader(topic, Position.EARLIEST) as reader:
                        _, position = reader.read_next()
                except Exception as e:
                    raise ResolutionError(topic, cause=e) from e
                logger.debug("earliest resolved", topic=topic, position=str(position))
                result[topic] = position
            return result
        finally:
            connection.close()

    def resolve_latest(self, topics: Iterable[str]) -> dict[str, Position]:
        """各トピックの最新位置（seekable latest）を返す。"""
        names = list(dict.fromkeys(topics))
        session = self._connect_admin(self._config)
        try:
            return {topic: self._latest(session, topic) for topic in names}
        finally:
            session.close()

    def topic_sizes(self, namespace: str | None = None) -> list[tuple[str, Position]]:
        """名前空間内の全トピックと最新位置（seekable latest）の組を返す。"""
        ns = namespace or self._config.namespace
        session = self._connect_admin(self._config)
        try:
            try:
                topics = session.list_topics(ns)
            except Exception as e:
                raise ResolutionError(ns, cause=e) from e
            return [(topic, self._latest(session, topic)) for topic in topics]
        finally:
            session.close()

    @staticmethod
    def _latest(session: AdminSession, topic: str) -> Position:
        try:
            raw = session.last_position(topic)
        except Exception as e:
            raise ResolutionError(topic, cause=e) from e
        position = seekable_latest(raw)
        logger.debug("latest resolved", topic=topic, raw=str(raw), position=str(position))
        return position
