"""pulsar_harness ライブラリの例外型定義"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import ProducedRecord


class PulsarHarnessError(Exception):
    """pulsar_harness ライブラリのエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class PulsarHarnessErrorCodes:
    """PulsarHarnessError のエラーコード定数。"""

    INVALID_ARGUMENT: str = "INVALID_ARGUMENT"
    INVALID_CONFIGURATION: str = "INVALID_CONFIGURATION"
    UNSUPPORTED_SCHEMA_TYPE: str = "UNSUPPORTED_SCHEMA_TYPE"
    SERIALIZATION_ERROR: str = "SERIALIZATION_ERROR"
    PUBLISH_FAILED: str = "PUBLISH_FAILED"
    INCOMPLETE_RESOLUTION: str = "INCOMPLETE_RESOLUTION"
    REGISTRATION_FAILED: str = "REGISTRATION_FAILED"
    NOT_FOUND: str = "NOT_FOUND"
    HTTP_ERROR: str = "HTTP_ERROR"
    CONNECTION_FAILED: str = "CONNECTION_FAILED"
    READ_FAILED: str = "READ_FAILED"
    READ_FILE: str = "READ_FILE_ERROR"
    PARSE_YAML: str = "PARSE_YAML_ERROR"
    VALIDATION: str = "VALIDATION_ERROR"


class PublishError(PulsarHarnessError):
    """発行途中で失敗したときのエラー。失敗位置と発行済みレコードを保持する。"""

    def __init__(
        self,
        topic: str,
        index: int,
        produced: list[ProducedRecord[Any]],
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=PulsarHarnessErrorCodes.PUBLISH_FAILED,
            message=(
                f"Failed to publish value #{index} to {topic} "
                f"after {len(produced)} acknowledged: {root_cause_message(cause)}"
            ),
            cause=cause,
        )
        self.topic = topic
        self.index = index
        self.produced = produced


class ResolutionError(PulsarHarnessError):
    """トピック群のいずれかで位置解決に失敗したときのエラー。"""

    def __init__(self, topic: str, cause: Exception | None = None) -> None:
        super().__init__(
            code=PulsarHarnessErrorCodes.INCOMPLETE_RESOLUTION,
            message=f"Failed to resolve position of {topic}: {root_cause_message(cause)}",
            cause=cause,
        )
        self.topic = topic


class RegistrationError(PulsarHarnessError):
    """スキーマ登録失敗（404 以外）。"""

    def __init__(self, topic: str, cause: Exception | None = None) -> None:
        super().__init__(
            code=PulsarHarnessErrorCodes.REGISTRATION_FAILED,
            message=f"Failed to create schema for {topic}: {root_cause_message(cause)}",
            cause=cause,
        )
        self.topic = topic


class AdminError(PulsarHarnessError):
    """管理 API のエラー。HTTP ステータスを持つ場合がある。"""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(code=code, message=message, cause=cause)
        self.status_code = status_code


def root_cause_message(exc: BaseException | None) -> str:
    """例外チェーンを根本原因まで辿り、そのメッセージを返す。"""
    if exc is None:
        return "unknown error"
    seen: set[int] = set()
    root = exc
    while id(root) not in seen:
        seen.add(id(root))
        nxt = root.__cause__ or root.__context__
        if nxt is None:
            break
        root = nxt
    if isinstance(root, PulsarHarnessError):
        # code プレフィックスを除いたメッセージ
        return Exception.__str__(root)
    return str(root) or type(root).__name__
