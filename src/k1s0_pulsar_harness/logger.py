"""structlog ベースのロガー設定"""

from __future__ import annotations

import logging
import sys

import structlog

LOGGER_NAME = "k1s0_pulsar_harness"

# 管理 API のリクエストごとに INFO ログを出すライブラリ
_CHATTY_LOGGERS = ("httpx", "httpcore")


def new_logger(level: str = "INFO", format: str = "json") -> structlog.stdlib.BoundLogger:
    """ハーネス用に structlog を設定し、ロガーを返す。

    Args:
        level: ログレベル ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")。
            未知の値は INFO として扱う。
        format: 出力形式 ("json" or "text")

    DEBUG 未満の詳細度では httpx のリクエストログを WARNING に抑える。
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
        )

    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    renderer: list[structlog.types.Processor]
    if format == "json":
        # PublishError などの例外チェーンを文字列化して 1 行に収める
        renderer = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=shared + renderer,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return structlog.stdlib.get_logger(LOGGER_NAME)
