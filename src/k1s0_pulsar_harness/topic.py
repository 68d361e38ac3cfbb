"""Pulsar トピック名の正規化"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

from .exceptions import PulsarHarnessError, PulsarHarnessErrorCodes

PUBLIC_TENANT = "public"
DEFAULT_NAMESPACE = "default"
PARTITION_SUFFIX = "-partition-"

_DOMAINS = ("persistent", "non-persistent")


@dataclass(frozen=True)
class TopicName:
    """完全修飾トピック名 domain://tenant/namespace/local_name。"""

    domain: str
    tenant: str
    namespace: str
    local_name: str

    @classmethod
    def get(cls, name: str) -> TopicName:
        """短縮名を含むトピック名を完全修飾形式に正規化する。

        - ``foo`` -> ``persistent://public/default/foo``
        - ``tenant/ns/foo`` -> ``persistent://tenant/ns/foo``
        """
        if not name or not name.strip():
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.INVALID_ARGUMENT,
                message="topic name cannot be empty",
            )
        domain = "persistent"
        rest = name
        if "://" in name:
            domain, rest = name.split("://", 1)
            if domain not in _DOMAINS:
                raise PulsarHarnessError(
                    code=PulsarHarnessErrorCodes.INVALID_ARGUMENT,
                    message=f"Invalid topic domain: {name}",
                )
        elif "/" not in name:
            rest = f"{PUBLIC_TENANT}/{DEFAULT_NAMESPACE}/{name}"

        parts = rest.split("/", 2)
        if len(parts) != 3 or not all(parts):
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.INVALID_ARGUMENT,
                message=f"Invalid topic name: {name}",
            )
        tenant, namespace, local_name = parts
        return cls(domain=domain, tenant=tenant, namespace=namespace, local_name=local_name)

    def __str__(self) -> str:
        return f"{self.domain}://{self.tenant}/{self.namespace}/{self.local_name}"

    @property
    def namespace_name(self) -> str:
        return f"{self.tenant}/{self.namespace}"

    @property
    def is_partition(self) -> bool:
        return PARTITION_SUFFIX in self.local_name

    def partition(self, index: int) -> TopicName:
        """パーティション index のサブトピック名を返す。"""
        if index < 0:
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.INVALID_ARGUMENT,
                message=f"partition must be >= 0: {index}",
            )
        if self.is_partition:
            raise PulsarHarnessError(
                code=PulsarHarnessErrorCodes.INVALID_ARGUMENT,
                message=f"{self} is already a partition",
            )
        return TopicName(
            domain=self.domain,
            tenant=self.tenant,
            namespace=self.namespace,
            local_name=f"{self.local_name}{PARTITION_SUFFIX}{index}",
        )

    @property
    def rest_path(self) -> str:
        """管理 REST API 用のパス domain/tenant/namespace/local_name。"""
        return "/".join(
            [self.domain, self.tenant, self.namespace, quote(self.local_name, safe="")]
        )

    @property
    def schema_path(self) -> str:
        """スキーマ API 用のパス tenant/namespace/local_name。"""
        return "/".join([self.tenant, self.namespace, quote(self.local_name, safe="")])
