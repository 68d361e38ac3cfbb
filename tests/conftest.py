"""pulsar_harness テスト共通フィクスチャ"""

from collections.abc import Iterator

import pytest
import structlog
from k1s0_pulsar_harness.harness import PulsarTestHarness
from k1s0_pulsar_harness.memory import InMemoryBroker
from k1s0_pulsar_harness.models import PulsarConfig

SERVICE_URL = "pulsar://localhost:6650"
ADMIN_URL = "http://localhost:8080"


class FakeMessageId:
    """pulsar.MessageId 互換のテスト用オブジェクト。"""

    def __init__(self, ledger: int, entry: int, partition: int = -1, batch: int = -1) -> None:
        self._ledger = ledger
        self._entry = entry
        self._partition = partition
        self._batch = batch

    def ledger_id(self) -> int:
        return self._ledger

    def entry_id(self) -> int:
        return self._entry

    def partition(self) -> int:
        return self._partition

    def batch_index(self) -> int:
        return self._batch


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


@pytest.fixture
def config() -> PulsarConfig:
    return PulsarConfig(service_url=SERVICE_URL, admin_url=ADMIN_URL)


@pytest.fixture
def broker() -> InMemoryBroker:
    return InMemoryBroker()


@pytest.fixture
def harness(config: PulsarConfig, broker: InMemoryBroker) -> PulsarTestHarness:
    return PulsarTestHarness(config, connect=broker.connect, connect_admin=broker.connect_admin)
