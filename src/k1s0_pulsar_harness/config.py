"""ハーネス設定の読み込み（pydantic BaseModel + YAML）"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import PulsarHarnessError, PulsarHarnessErrorCodes
from .models import PulsarConfig


class PulsarSection(BaseModel):
    """Pulsar 接続設定。"""

    service_url: str = Field(default="pulsar://localhost:6650", min_length=1)
    admin_url: str = Field(default="http://localhost:8080", min_length=1)
    namespace: str = Field(default="public/default", pattern=r"^[^/]+/[^/]+$")
    timeout_seconds: float = Field(default=30.0, gt=0)
    auth_token: str = ""


class LogSection(BaseModel):
    """ログ設定。"""

    level: str = "INFO"
    format: Literal["json", "text"] = "json"


class ObservabilitySection(BaseModel):
    """可観測性設定。"""

    log: LogSection = Field(default_factory=LogSection)


class HarnessConfig(BaseModel):
    """ハーネス設定全体。"""

    pulsar: PulsarSection = Field(default_factory=PulsarSection)
    observability: ObservabilitySection = Field(default_factory=ObservabilitySection)

    def to_pulsar_config(self) -> PulsarConfig:
        return PulsarConfig(
            service_url=self.pulsar.service_url,
            admin_url=self.pulsar.admin_url,
            namespace=self.pulsar.namespace,
            timeout_seconds=self.pulsar.timeout_seconds,
            auth_token=self.pulsar.auth_token,
        )


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """base と override をディープマージして新しい辞書を返す。

    override の値が優先される。リストは置換（マージしない）。
    """
    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PulsarHarnessError(
            code=PulsarHarnessErrorCodes.READ_FILE,
            message=f"Failed to read config file: {path}",
            cause=e,
        ) from e
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise PulsarHarnessError(
            code=PulsarHarnessErrorCodes.PARSE_YAML,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e
    if not isinstance(data, dict):
        raise PulsarHarnessError(
            code=PulsarHarnessErrorCodes.PARSE_YAML,
            message=f"Top level of {path} must be a mapping, got {type(data).__name__}",
        )
    return data


def load(
    base_path: str | Path,
    env_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> HarnessConfig:
    """設定ファイルを読み込んで HarnessConfig を返す。

    base_path: ベース設定ファイルパス（必須）
    env_path: 環境別設定ファイルパス（オプション）。存在する場合はベースにマージ。
    overrides: 最後にマージする値。起動したブローカーの URL を差し込む用途を想定。
    """
    data = _read_yaml(Path(base_path))
    if env_path is not None and Path(env_path).exists():
        data = deep_merge(data, _read_yaml(Path(env_path)))
    if overrides:
        data = deep_merge(data, overrides)
    try:
        return HarnessConfig.model_validate(data)
    except ValidationError as e:
        raise PulsarHarnessError(
            code=PulsarHarnessErrorCodes.VALIDATION,
            message=f"Invalid harness config {base_path}: {e}",
            cause=e,
        ) from e
