"""
Tests for error classification
"""
import asyncio
import logging

import pytest
from nats.errors import NoRespondersError
from nats.errors import TimeoutError as NatsTimeoutError
from nats.js.errors import NoStreamResponseError

from natstore.errors import (
    BrokerOperationError,
    ConnectionError,
    NatstoreError,
    NoStreamError,
    PersistenceUnavailableError,
    RequestTimeoutError,
    SerializationError,
    classify,
    is_no_responders,
)


class TestClassify:
    """Test the classification shim"""

    def test_none_is_noop(self, caplog):
        with caplog.at_level(logging.ERROR):
            assert classify("publish", None) is None
        assert caplog.records == []

    def test_no_responders_text_maps_to_persistence_unavailable(self):
        err = RuntimeError("nats: no responders available for request")
        classified = classify("stream create update", err)
        assert isinstance(classified, PersistenceUnavailableError)
        assert str(classified) == "stream create update: nats: jetstream not enabled"
        assert classified.location == "stream create update"

    @pytest.mark.parametrize("location", ["publish", "stream create update", "consume"])
    def test_no_responders_error_from_any_operation(self, location):
        classified = classify(location, NoRespondersError())
        assert isinstance(classified, PersistenceUnavailableError)
        assert str(classified).startswith(f"{location}: ")

    def test_other_errors_are_wrapped_with_location(self):
        classified = classify("publish", RuntimeError("boom"))
        assert type(classified) is BrokerOperationError
        assert str(classified) == "publish: boom"

    def test_empty_message_falls_back_to_type_name(self):
        classified = classify("publish", RuntimeError())
        assert str(classified) == "publish: RuntimeError"

    def test_no_stream_response(self):
        classified = classify("publish", NoStreamResponseError())
        assert isinstance(classified, NoStreamError)
        assert isinstance(classified, BrokerOperationError)

    @pytest.mark.parametrize("err", [NatsTimeoutError(), asyncio.TimeoutError()])
    def test_timeouts(self, err):
        assert isinstance(classify("request", err), RequestTimeoutError)

    def test_natstore_error_keeps_its_class(self):
        classified = classify("publish", SerializationError("json encode: bad"))
        assert type(classified) is SerializationError
        assert str(classified) == "publish: json encode: bad"

    def test_connection_error_is_not_builtin(self):
        classified = classify("consume", ConnectionError("no connection"))
        assert isinstance(classified, NatstoreError)
        assert isinstance(classified, ConnectionError)

    def test_already_classified_error_passes_through(self, caplog):
        first = classify("consume", RuntimeError("boom"))
        caplog.clear()
        with caplog.at_level(logging.ERROR):
            assert classify("consume", first) is first
        assert caplog.records == []

    def test_logs_once_at_error(self, caplog):
        log = logging.getLogger("natstore.test")
        with caplog.at_level(logging.DEBUG, logger="natstore.test"):
            classify("publish", RuntimeError("boom"), log)
        records = [r for r in caplog.records if r.name == "natstore.test"]
        assert len(records) == 1
        assert records[0].levelno == logging.ERROR
        assert records[0].getMessage() == "publish: boom"
        assert records[0].location == "publish"


def test_is_no_responders():
    assert is_no_responders(NoRespondersError())
    assert is_no_responders(Exception("x: no responders available for request"))
    assert not is_no_responders(Exception("timeout"))
