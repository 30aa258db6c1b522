"""
Tests for consumer configuration and options
"""
import pytest
from nats.js.api import AckPolicy, DeliverPolicy

from natstore.errors import InvalidConfigError, InvalidConsumerConfigError
from natstore.jetstream.consumer import (
    BASELINE_CONSUMER_CONFIG,
    ConsumerConfig,
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


class TestBaseline:
    """Test the baseline consumer configuration"""

    def test_values(self):
        assert BASELINE_CONSUMER_CONFIG.ack_policy == AckPolicy.EXPLICIT
        assert BASELINE_CONSUMER_CONFIG.backoff == [5.0, 10.0]
        assert BASELINE_CONSUMER_CONFIG.max_deliver == 4
        assert BASELINE_CONSUMER_CONFIG.durable_name is None

    def test_building_leaves_baseline_untouched(self):
        """Test options mutate a copy, never the shared baseline"""
        build_consumer_config("orders.created", with_durable_name("billing"), with_backoff([1]))
        assert BASELINE_CONSUMER_CONFIG.durable_name is None
        assert BASELINE_CONSUMER_CONFIG.backoff == [5.0, 10.0]
        assert BASELINE_CONSUMER_CONFIG.filter_subject == ""


class TestBuildConsumerConfig:
    """Test option application"""

    def test_subject_and_defaults(self):
        config = build_consumer_config("orders.created")
        assert config.filter_subject == "orders.created"
        assert config.max_deliver == 4
        assert config.backoff == [5.0, 10.0]

    def test_durable_name(self):
        assert build_consumer_config("orders.created", with_durable_name("billing")).durable_name == "billing"

    def test_last_option_wins(self):
        config = build_consumer_config(
            "orders.created",
            with_durable_name("first"),
            with_durable_name("second"),
        )
        assert config.durable_name == "second"

    def test_options_apply_in_order(self):
        applied = []

        def record(tag):
            def option(config):
                applied.append(tag)
            return option

        build_consumer_config("orders.created", record("a"), record("b"), record("c"))
        assert applied == ["a", "b", "c"]

    def test_none_options_are_skipped(self):
        config = build_consumer_config("orders.created", None, with_max_deliver(6), None)
        assert config.max_deliver == 6

    def test_every_option(self):
        config = build_consumer_config(
            "orders.*",
            with_backoff([1, 2, 4]),
            with_max_deliver(5),
            with_ack_wait(1),
            with_deliver_policy(DeliverPolicy.NEW),
            with_max_ack_pending(100),
            with_description("billing consumer"),
        )
        assert config.backoff == [1.0, 2.0, 4.0]
        assert config.max_deliver == 5
        assert config.ack_wait == 1
        assert config.deliver_policy == DeliverPolicy.NEW
        assert config.max_ack_pending == 100
        assert config.description == "billing consumer"

    def test_apply_options_returns_config(self):
        config = ConsumerConfig(filter_subject="x")
        assert apply_options(config, [with_max_deliver(9)]) is config
        assert config.max_deliver == 9


class TestValidation:
    """Test rules rejected before reaching the broker"""

    @pytest.mark.parametrize("options", [
        (with_max_deliver(2),),                       # not above two backoff steps
        (with_backoff([1, 2, 3, 4]),),                # four steps, max deliver 4
        (with_backoff([0, 1]),),
        (with_max_deliver(0),),
        (with_durable_name(""),),
        (with_durable_name("billing.v2"),),
        (with_durable_name("bill ing"),),
        (with_ack_wait(-1),),
    ])
    def test_invalid(self, options):
        with pytest.raises(InvalidConsumerConfigError):
            build_consumer_config("orders.created", *options)

    def test_empty_subject(self):
        with pytest.raises(InvalidConsumerConfigError, match="filter subject"):
            build_consumer_config("")

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            build_consumer_config("orders.created", with_max_deliver(1))
        assert issubclass(InvalidConsumerConfigError, InvalidConfigError)

    def test_ack_wait_conflicting_with_backoff(self):
        """Test an ack wait the broker would replace with backoff[0] is refused"""
        with pytest.raises(InvalidConsumerConfigError, match="conflicts with backoff"):
            build_consumer_config("orders.created", with_ack_wait(30))

    def test_ack_wait_matching_first_backoff_step(self):
        config = build_consumer_config("orders.created", with_ack_wait(5))
        assert config.ack_wait == 5

    def test_empty_backoff_allows_single_delivery(self):
        config = build_consumer_config("orders.created", with_backoff([]), with_max_deliver(1))
        assert config.backoff == []


class TestToNats:
    """Test conversion to the nats-py consumer config"""

    def test_fields(self):
        nats_config = build_consumer_config(
            "orders.created", with_durable_name("billing")
        ).to_nats()
        assert nats_config.durable_name == "billing"
        assert nats_config.filter_subject == "orders.created"
        assert nats_config.ack_policy == AckPolicy.EXPLICIT
        assert nats_config.max_deliver == 4
        assert nats_config.backoff == [5.0, 10.0]
        assert nats_config.ack_wait is None

    def test_ack_wait_without_backoff(self):
        nats_config = build_consumer_config(
            "orders.created", with_backoff([]), with_max_deliver(3), with_ack_wait(15)
        ).to_nats()
        assert nats_config.ack_wait == 15
        assert nats_config.backoff is None

    def test_empty_backoff_is_omitted(self):
        nats_config = build_consumer_config("orders.created", with_backoff([]), with_max_deliver(1)).to_nats()
        assert nats_config.backoff is None
