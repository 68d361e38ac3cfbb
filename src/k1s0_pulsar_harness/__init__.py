"""k1s0 pulsar_harness library."""

from .admin import HttpAdminSession, connect_admin
from .client import AdminSession, BrokerConnection, PositionedReader, TypedProducer
from .config import HarnessConfig, load
from .exceptions import (
    AdminError,
    PublishError,
    PulsarHarnessError,
    PulsarHarnessErrorCodes,
    RegistrationError,
    ResolutionError,
)
from .harness import PulsarTestHarness
from .logger import new_logger
from .memory import InMemoryBroker
from .models import (
    Position,
    ProducedRecord,
    PulsarConfig,
    RegistrationResult,
    SchemaDescriptor,
    SchemaType,
    seekable_latest,
)
from .offsets import OffsetResolver
from .producer import TypedProducerFactory
from .pulsar_client import PulsarConnection, connect
from .registrar import SchemaRegistrar
from .topic import TopicName

__all__ = [
    "TypedProducerFactory",
    "OffsetResolver",
    "SchemaRegistrar",
    "PulsarTestHarness",
    "BrokerConnection",
    "TypedProducer",
    "PositionedReader",
    "AdminSession",
    "PulsarConnection",
    "HttpAdminSession",
    "InMemoryBroker",
    "connect",
    "connect_admin",
    "HarnessConfig",
    "load",
    "new_logger",
    "Position",
    "ProducedRecord",
    "PulsarConfig",
    "RegistrationResult",
    "SchemaDescriptor",
    "SchemaType",
    "TopicName",
    "seekable_latest",
    "PulsarHarnessError",
    "PulsarHarnessErrorCodes",
    "PublishError",
    "ResolutionError",
    "RegistrationError",
    "AdminError",
]
