"""
Error taxonomy and classification

Every public operation of the basic and durable tiers funnels its terminal
error through :func:`classify`, which tags it with the operation location,
maps the "no responders" signature to :class:`PersistenceUnavailableError`
and logs it exactly once.
"""

import asyncio
import logging
from typing import Optional

from nats.errors import NoRespondersError
from nats.errors import TimeoutError as NatsTimeoutError
from nats.js.errors import NoStreamResponseError, ServiceUnavailableError

logger = logging.getLogger(__name__)

NO_RESPONDERS_SIGNATURE = "no responders available for request"
JETSTREAM_NOT_ENABLED = "nats: jetstream not enabled"


class NatstoreError(Exception):
    """Base class for all natstore errors"""

    def __init__(self, message: str = "", location: Optional[str] = None):
        self.message = message
        self.location = location
        super().__init__(f"{location}: {message}" if location else message)


class ConnectionError(NatstoreError):
    """Connection handle missing or not connected"""


class LoggerMissingError(NatstoreError):
    """Client has no logger configured"""


class ContextCreationError(NatstoreError):
    """JetStream context could not be created from the connection"""


class PersistenceUnavailableError(NatstoreError):
    """The broker does not have JetStream enabled"""


class SerializationError(NatstoreError):
    """Outbound payload could not be encoded"""


class DeserializationError(NatstoreError):
    """Inbound payload could not be decoded"""


class BrokerOperationError(NatstoreError):
    """Any other failure reported by the connection or JetStream"""


class NoStreamError(BrokerOperationError):
    """No stream is bound to the published subject"""


class RequestTimeoutError(BrokerOperationError):
    """No reply arrived before the request deadline"""


class InvalidConfigError(NatstoreError, ValueError):
    """Stream or consumer definition rejected before reaching the broker"""


class InvalidStreamConfigError(InvalidConfigError):
    """Stream definition is incomplete"""


class InvalidConsumerConfigError(InvalidConfigError):
    """Consumer configuration violates a broker rule"""


ERR_NIL_CONNECTION = "nats connection error: nats connection object not returned"
ERR_NOT_CONNECTED = "nats connection error: connection is not established"
ERR_NIL_LOGGER = "nats: logger not initialised"
ERR_NIL_CONTEXT = "jetstream connection not established"


def is_no_responders(err: BaseException) -> bool:
    """Check whether an error carries the no-responders signature"""
    if isinstance(err, (NoRespondersError, ServiceUnavailableError)):
        return True
    return NO_RESPONDERS_SIGNATURE in str(err)


def classify(location: str, err: Optional[BaseException],
             log: Optional[logging.Logger] = None) -> Optional[NatstoreError]:
    """Normalize an operation failure and log it

    Args:
        location: Operation tag prefixed to the message, e.g. "publish"
        err: The failure, or None
        log: Logger receiving the error record, module logger if None

    Returns:
        NatstoreError: The classified error, None when err is None
    """
    if err is None:
        return None

    if isinstance(err, NatstoreError) and err.location:
        # already classified upstream and logged there
        return err

    if isinstance(err, NatstoreError):
        classified = type(err)(err.message, location)
    elif is_no_responders(err):
        classified = PersistenceUnavailableError(JETSTREAM_NOT_ENABLED, location)
    elif isinstance(err, NoStreamResponseError):
        classified = NoStreamError(f"no stream accepts this subject ({err})", location)
    elif isinstance(err, (NatsTimeoutError, asyncio.TimeoutError)):
        classified = RequestTimeoutError(str(err) or "nats: timeout", location)
    else:
        classified = BrokerOperationError(str(err) or type(err).__name__, location)

    (log or logger).error(
        str(classified),
        extra={"location": location, "error_type": type(classified).__name__},
    )
    return classified
