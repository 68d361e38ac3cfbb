"""ロガー設定のユニットテスト"""

import logging

from k1s0_pulsar_harness.logger import new_logger


def test_new_logger_json_format() -> None:
    """JSON フォーマットのロガーが作成できること。"""
    logger = new_logger(level="INFO", format="json")
    assert logger is not None


def test_new_logger_text_format() -> None:
    """テキストフォーマットのロガーが作成できること。"""
    logger = new_logger(level="DEBUG", format="text")
    assert logger is not None


def test_new_logger_unknown_level_falls_back() -> None:
    """未知のログレベルでもロガーが作成できること。"""
    logger = new_logger(level="VERBOSE")
    assert logger.bind(topic="t1") is not None


def test_new_logger_quiets_httpx() -> None:
    """INFO では httpx のリクエストログが WARNING に抑えられること。"""
    new_logger(level="INFO")
    assert logging.getLogger("httpx").level == logging.WARNING
    new_logger(level="DEBUG")
    assert logging.getLogger("httpx").level == logging.DEBUG
