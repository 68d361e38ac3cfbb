"""トピックへのスキーマ登録"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from . import admin
from .client import AdminSession
from .exceptions import (
    AdminError,
    PulsarHarnessError,
    PulsarHarnessErrorCodes,
    RegistrationError,
)
from .models import PulsarConfig, RegistrationResult, SchemaDescriptor
from .topic import TopicName

logger = structlog.stdlib.get_logger(__name__)


class SchemaRegistrar:
    """スキーマレジストリへスキーマを登録する。

    トピックが存在しない（HTTP 404）場合は失敗とせず SKIPPED を返す。
    それ以外の失敗は RegistrationError にラップする。リトライはしない。
    """

    def __init__(
        self,
        config: PulsarConfig,
        connect_admin: Callable[[PulsarConfig], AdminSession] = admin.connect_admin,
    ) -> None:
        self._config = config
        self._connect_admin = connect_admin

    def register_schema(self, topic: str, descriptor: SchemaDescriptor) -> RegistrationResult:
        if descriptor is None or not descriptor.type:
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.INVALID_ARGUMENT,
                message="schema descriptor shouldn't be null",
            )
        name = str(TopicName.get(topic))

        try:
            session = self._connect_admin(self._config)
        except Exception as e:
            raise RegistrationError(name, cause=e) from e
        try:
            result = self._submit(session, name, descriptor)
        except BaseException:
            try:
                session.close()
            except Exception as e:
                logger.warning("close admin session failed", topic=name, error=str(e))
            raise
        try:
            session.close()
        except Exception as e:
            raise RegistrationError(name, cause=e) from e
        return result

    @staticmethod
    def _submit(
        session: AdminSession, name: str, descriptor: SchemaDescriptor
    ) -> RegistrationResult:
        try:
            session.register_schema(name, descriptor)
        except AdminError as e:
            if e.status_code == 404:
                logger.error("create schema got 404", topic=name, schema_type=descriptor.type)
                return RegistrationResult.SKIPPED
            raise RegistrationError(name, cause=e) from e
        except Exception as e:
            raise RegistrationError(name, cause=e) from e
        logger.info("schema registered", topic=name, schema_type=descriptor.type)
        return RegistrationResult.REGISTERED
