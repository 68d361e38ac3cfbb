"""Pulsar 管理 REST API クライアント実装"""

from __future__ import annotations

from typing import Any

import httpx

from .client import AdminSession
from .exceptions import AdminError, PulsarHarnessErrorCodes
from .models import Position, PulsarConfig, SchemaDescriptor
from .topic import TopicName


class HttpAdminSession(AdminSession):
    """httpx を使った Pulsar 管理 REST API セッション。

    1 セッションは 1 つの httpx.Client を保持し、close() で解放する。
    """

    def __init__(self, admin_url: str, auth_token: str = "", timeout_seconds: float = 30.0) -> None:
        headers: dict[str, str] = {"Accept": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        self._client = httpx.Client(
            base_url=admin_url,
            headers=headers,
            timeout=timeout_seconds,
        )

    def _handle_error(self, resp: httpx.Response, context: str) -> None:
        if resp.status_code == 404:
            raise AdminError(
                code=PulsarHarnessErrorCodes.NOT_FOUND,
                message=f"{context}: HTTP 404: {_reason(resp)}",
                status_code=404,
            )
        if resp.status_code >= 400:
            raise AdminError(
                code=PulsarHarnessErrorCodes.HTTP_ERROR,
                message=f"{context}: HTTP {resp.status_code}: {_reason(resp)}",
                status_code=resp.status_code,
            )

    def last_position(self, topic: str) -> Position:
        name = TopicName.get(topic)
        context = f"last_position({name})"
        try:
            resp = self._client.get(f"/admin/v2/{name.rest_path}/lastMessageId")
            self._handle_error(resp, context)
            data: dict[str, Any] = resp.json()
            return Position.from_json(data)
        except AdminError:
            raise
        except Exception as e:
            raise AdminError(
                code=PulsarHarnessErrorCodes.HTTP_ERROR,
                message=f"{context}: {e}",
                cause=e,
            ) from e

    def list_topics(self, namespace: str) -> list[str]:
        context = f"list_topics({namespace})"
        try:
            resp = self._client.get(f"/admin/v2/namespaces/{namespace}/topics")
            self._handle_error(resp, context)
            topics: list[str] = resp.json()
            return topics
        except AdminError:
            raise
        except Exception as e:
            raise AdminError(
                code=PulsarHarnessErrorCodes.HTTP_ERROR,
                message=f"{context}: {e}",
                cause=e,
            ) from e

    def register_schema(self, topic: str, descriptor: SchemaDescriptor) -> None:
        name = TopicName.get(topic)
        context = f"register_schema({name})"
        try:
            resp = self._client.post(
                f"/admin/v2/schemas/{name.schema_path}/schema",
                json=descriptor.to_payload(),
            )
            self._handle_error(resp, context)
        except AdminError:
            raise
        except Exception as e:
            raise AdminError(
                code=PulsarHarnessErrorCodes.HTTP_ERROR,
                message=f"{context}: {e}",
                cause=e,
            ) from e

    def close(self) -> None:
        self._client.close()


def _reason(resp: httpx.Response) -> str:
    """Pulsar のエラーレスポンス {"reason": ...} から理由を取り出す。"""
    try:
        data = resp.json()
    except ValueError:
        return resp.text
    if isinstance(data, dict) and "reason" in data:
        return str(data["reason"])
    return resp.text


def connect_admin(config: PulsarConfig) -> AdminSession:
    """PulsarConfig から管理セッションを作成する。"""
    return HttpAdminSession(
        config.admin_url,
        auth_token=config.auth_token,
        timeout_seconds=config.timeout_seconds,
    )
