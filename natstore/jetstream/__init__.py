"""
NATS JetStream tier

Persistent streams and acknowledging consumers with bounded, backed-off
redelivery.
"""

from natstore.jetstream.client import JetStreamClient
from natstore.jetstream.consumer import (
    BASELINE_CONSUMER_CONFIG,
    ConsumerConfig,
    ConsumerConfigOption,
    apply_options,
    build_consumer_config,
    with_ack_wait,
    with_backoff,
    with_deliver_policy,
    with_description,
    with_durable_name,
    with_max_ack_pending,
    with_max_deliver,
)
from natstore.jetstream.subscription import ConsumerHandle, Message
from natstore.jetstream.utils import (
    BackoffTimer,
    generate_deterministic_msg_id,
    redelivery_delay,
)

__all__ = [
    "JetStreamClient",
    "ConsumerHandle",
    "Message",
    "ConsumerConfig",
    "ConsumerConfigOption",
    "BASELINE_CONSUMER_CONFIG",
    "apply_options",
    "build_consumer_config",
    "with_durable_name",
    "with_backoff",
    "with_max_deliver",
    "with_ack_wait",
    "with_deliver_policy",
    "with_max_ack_pending",
    "with_description",
    "BackoffTimer",
    "generate_deterministic_msg_id",
    "redelivery_delay",
]
