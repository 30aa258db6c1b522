"""
Consumer configuration

A consumer starts from :data:`BASELINE_CONSUMER_CONFIG`, gets its filter
subject, then each option mutates it in the order supplied. Options touching
the same field overwrite each other: the last one wins.

    config = build_consumer_config(
        "orders.created",
        with_durable_name("billing"),
        with_backoff([1, 5, 30]),
        with_max_deliver(5),
    )
"""

import copy
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from nats.js.api import AckPolicy, DeliverPolicy
from nats.js.api import ConsumerConfig as NatsConsumerConfig

from natstore.errors import InvalidConsumerConfigError

DEFAULT_BACKOFF = (5.0, 10.0)  # seconds
DEFAULT_MAX_DELIVER = 4


@dataclass
class ConsumerConfig:
    """Acknowledging consumer settings

    Attributes:
        filter_subject: Subject the consumer reads from its stream
        ack_policy: Acknowledgement policy, explicit by default
        backoff: Redelivery delays in seconds; entry i is the wait before
            delivery i + 2
        max_deliver: Total delivery attempts per message, first one included
        durable_name: Resumable consumer name; None makes it ephemeral
        ack_wait: Seconds before an unacknowledged delivery times out.
            With a non-empty backoff the broker always uses backoff[0], so
            only that value is accepted alongside a backoff schedule
        deliver_policy: Where in the stream a new consumer starts
        max_ack_pending: Cap on unacknowledged in-flight messages
        description: Free text shown by the broker
    """
    filter_subject: str = ""
    ack_policy: AckPolicy = AckPolicy.EXPLICIT
    backoff: List[float] = field(default_factory=lambda: list(DEFAULT_BACKOFF))
    max_deliver: int = DEFAULT_MAX_DELIVER
    durable_name: Optional[str] = None
    ack_wait: Optional[float] = None
    deliver_policy: Optional[DeliverPolicy] = None
    max_ack_pending: Optional[int] = None
    description: Optional[str] = None

    def validate(self) -> "ConsumerConfig":
        """Reject settings the broker would refuse

        Raises:
            InvalidConsumerConfigError: on the first violated rule
        """
        if not self.filter_subject:
            raise InvalidConsumerConfigError("consumer filter subject is empty")
        if self.max_deliver < 1:
            raise InvalidConsumerConfigError(f"max deliver must be >= 1, got {self.max_deliver}")
        if any(delay <= 0 for delay in self.backoff):
            raise InvalidConsumerConfigError(f"backoff delays must be positive, got {self.backoff}")
        if self.backoff and self.max_deliver <= len(self.backoff):
            raise InvalidConsumerConfigError(
                f"max deliver ({self.max_deliver}) must exceed the number of backoff steps ({len(self.backoff)})"
            )
        if self.durable_name is not None and (
            not self.durable_name or any(c in self.durable_name for c in ". *>")
        ):
            raise InvalidConsumerConfigError(f"invalid durable name {self.durable_name!r}")
        if self.ack_wait is not None and self.ack_wait <= 0:
            raise InvalidConsumerConfigError(f"ack wait must be positive, got {self.ack_wait}")
        if self.ack_wait is not None and self.backoff and self.ack_wait != self.backoff[0]:
            raise InvalidConsumerConfigError(
                f"ack wait ({self.ack_wait}) conflicts with backoff, the broker waits backoff[0] "
                f"({self.backoff[0]}); drop the backoff or leave ack wait unset"
            )
        return self

    def to_nats(self) -> NatsConsumerConfig:
        """Convert to the nats-py consumer configuration"""
        return NatsConsumerConfig(
            durable_name=self.durable_name,
            description=self.description,
            deliver_policy=self.deliver_policy,
            ack_policy=self.ack_policy,
            ack_wait=self.ack_wait,
            max_deliver=self.max_deliver,
            backoff=list(self.backoff) or None,
            filter_subject=self.filter_subject,
            max_ack_pending=self.max_ack_pending,
        )


# Explicit ack, redelivery after 5s then 10s, at most 4 deliveries
BASELINE_CONSUMER_CONFIG = ConsumerConfig()

ConsumerConfigOption = Callable[[ConsumerConfig], None]


def with_durable_name(name: str) -> ConsumerConfigOption:
    """Name the consumer so it survives disconnects and resumes where it left off"""
    def option(config: ConsumerConfig):
        config.durable_name = name
    return option


def with_backoff(delays: Sequence[float]) -> ConsumerConfigOption:
    """Replace the redelivery backoff schedule (seconds)"""
    def option(config: ConsumerConfig):
        config.backoff = [float(d) for d in delays]
    return option


def with_max_deliver(attempts: int) -> ConsumerConfigOption:
    """Cap the number of delivery attempts per message"""
    def option(config: ConsumerConfig):
        config.max_deliver = attempts
    return option


def with_ack_wait(seconds: float) -> ConsumerConfigOption:
    """Ack timeout for consumers without a backoff schedule, e.g. after with_backoff([])"""
    def option(config: ConsumerConfig):
        config.ack_wait = seconds
    return option


def with_deliver_policy(policy: DeliverPolicy) -> ConsumerConfigOption:
    def option(config: ConsumerConfig):
        config.deliver_policy = policy
    return option


def with_max_ack_pending(limit: int) -> ConsumerConfigOption:
    def option(config: ConsumerConfig):
        config.max_ack_pending = limit
    return option


def with_description(text: str) -> ConsumerConfigOption:
    def option(config: ConsumerConfig):
        config.description = text
    return option


def apply_options(config: ConsumerConfig,
                  options: Sequence[Optional[ConsumerConfigOption]]) -> ConsumerConfig:
    """Apply options in the given order, skipping None entries"""
    for option in options:
        if option is not None:
            option(config)
    return config


def build_consumer_config(subject: str,
                          *options: Optional[ConsumerConfigOption]) -> ConsumerConfig:
    """Baseline copy, filter subject, then options, then validation

    Raises:
        InvalidConsumerConfigError: the resulting configuration is invalid
    """
    config = copy.deepcopy(BASELINE_CONSUMER_CONFIG)
    config.filter_subject = subject
    return apply_options(config, options).validate()
