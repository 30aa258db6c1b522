"""
natstore

Thin asyncio layer over nats-py with two tiers:

1. Basic: fire-and-forget publish, request/reply and plain subscriptions
2. JetStream: persistent streams, acknowledged publish and consumers with
   explicit acks, bounded redelivery and backoff

Errors from every operation are classified into the ``natstore.errors``
taxonomy and logged once.
"""

from natstore.basic import DEFAULT_REQUEST_TIMEOUT, Basic
from natstore.codec import Codec, JsonCodec, ProtobufCodec
from natstore.config import NatsConfig
from natstore.connect import connect, connect_from_config
from natstore.errors import (
    BrokerOperationError,
    ConnectionError,
    ContextCreationError,
    DeserializationError,
    InvalidConfigError,
    InvalidConsumerConfigError,
    InvalidStreamConfigError,
    LoggerMissingError,
    NatstoreError,
    NoStreamError,
    PersistenceUnavailableError,
    RequestTimeoutError,
    SerializationError,
    classify,
)
from natstore.jetstream import (
    ConsumerConfig,
    ConsumerHandle,
    JetStreamClient,
    Message,
    with_ack_wait,
    with_backoff,
    with_deliver_policy,
    with_description,
    with_durable_name,
    with_max_ack_pending,
    with_max_deliver,
)
from natstore.log import configure_logging, get_default_logger

__version__ = "0.1.0"

__all__ = [
    # Clients
    "Basic",
    "JetStreamClient",
    "ConsumerHandle",
    "Message",
    "connect",
    "connect_from_config",
    "DEFAULT_REQUEST_TIMEOUT",
    # Configuration
    "NatsConfig",
    "ConsumerConfig",
    "with_durable_name",
    "with_backoff",
    "with_max_deliver",
    "with_ack_wait",
    "with_deliver_policy",
    "with_max_ack_pending",
    "with_description",
    # Codecs
    "Codec",
    "JsonCodec",
    "ProtobufCodec",
    # Logging
    "configure_logging",
    "get_default_logger",
    # Errors
    "classify",
    "NatstoreError",
    "ConnectionError",
    "LoggerMissingError",
    "ContextCreationError",
    "PersistenceUnavailableError",
    "SerializationError",
    "DeserializationError",
    "BrokerOperationError",
    "NoStreamError",
    "RequestTimeoutError",
    "InvalidConfigError",
    "InvalidStreamConfigError",
    "InvalidConsumerConfigError",
]
