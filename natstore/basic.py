"""
Basic NATS messaging

Fire-and-forget publish, timed request/reply and plain subscriptions on core
NATS subjects. Delivery is at-most-once: no acknowledgement, no redelivery.
"""

import inspect
import logging
import time
from typing import Any, Callable, Optional

from nats.aio.client import Client as NATS
from nats.aio.msg import Msg
from nats.aio.subscription import Subscription
from nats.errors import NoRespondersError

from natstore.codec import DEFAULT_CODEC, Codec
from natstore.config import NatsConfig
from natstore.errors import (
    ERR_NIL_CONNECTION,
    ERR_NIL_LOGGER,
    ERR_NOT_CONNECTED,
    ConnectionError,
    LoggerMissingError,
    NatstoreError,
    RequestTimeoutError,
    classify,
)
from natstore.log import get_default_logger
from natstore.telemetry.metrics import (
    PUBLISHED,
    REQUEST_LATENCY,
    REQUESTS,
    increment_counter,
    record_latency,
)

# Default time to wait for a reply in request operations (seconds)
DEFAULT_REQUEST_TIMEOUT = 0.01

MsgHandler = Callable[[Msg], Any]


class Basic:
    """Publish, request and subscribe over a NATS connection"""

    def __init__(self, nc: Optional[NATS], codec: Optional[Codec] = None,
                 logger: Optional[logging.Logger] = None,
                 request_timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self._nc = nc
        self.codec = codec or DEFAULT_CODEC
        self._logger = logger or get_default_logger()
        self.request_timeout = request_timeout

    @classmethod
    def from_config(cls, nc: Optional[NATS], config: NatsConfig, **kwargs: Any) -> "Basic":
        """Build a client whose request timeout comes from ``config``"""
        kwargs.setdefault("request_timeout", config.request_timeout)
        return cls(nc, **kwargs)

    def with_logger(self, logger: Optional[logging.Logger]) -> "Basic":
        """Replace the logger, returns self for chaining"""
        self._logger = logger
        return self

    @property
    def nc(self) -> Optional[NATS]:
        """Underlying NATS connection for direct access"""
        return self._nc

    def _check_connections(self):
        if self._nc is None:
            raise ConnectionError(ERR_NIL_CONNECTION)
        if not self._nc.is_connected:
            raise ConnectionError(ERR_NOT_CONNECTED)
        if self._logger is None:
            raise LoggerMissingError(ERR_NIL_LOGGER)

    def _fail(self, location: str, err: BaseException) -> NatstoreError:
        return classify(location, err, self._logger)

    async def publish(self, subject: str, data: Any) -> None:
        """Encode ``data`` and publish it on ``subject``

        Raises:
            NatstoreError: precondition, encoding or publish failure
        """
        try:
            self._check_connections()
            payload = self.codec.serialize(data)
            await self._nc.publish(subject, payload)
        except Exception as e:
            raise self._fail("publish", e) from e

        increment_counter(PUBLISHED, 1, {"subject": subject, "tier": "basic"})

    async def request(self, subject: str, data: Any,
                      timeout: Optional[float] = None,
                      into: Optional[Any] = None) -> Any:
        """Send a request and wait for the decoded reply

        Args:
            subject: Request subject
            data: Request payload, encoded with the codec
            timeout: Seconds to wait for the reply, the client's
                ``request_timeout`` when None
            into: Optional target type handed to the codec

        Returns:
            Any: The decoded reply

        Raises:
            RequestTimeoutError: no reply in time or nobody listening
            NatstoreError: any other failure
        """
        if timeout is None:
            timeout = self.request_timeout
        start_time = time.time()
        try:
            self._check_connections()
            payload = self.codec.serialize(data)
            try:
                msg = await self._nc.request(subject, payload, timeout=timeout)
            except NoRespondersError as e:
                # nobody is subscribed, so no reply can ever arrive
                raise RequestTimeoutError(f"no reply on {subject}: nobody is listening") from e
            reply = self.codec.deserialize(msg.data, into)
        except Exception as e:
            increment_counter(REQUESTS, 1, {"subject": subject, "status": "error"})
            raise self._fail("request", e) from e

        record_latency(REQUEST_LATENCY, (time.time() - start_time) * 1000, {"subject": subject})
        increment_counter(REQUESTS, 1, {"subject": subject, "status": "ok"})
        return reply

    async def subscribe(self, subject: str, handler: MsgHandler, queue: str = "") -> Subscription:
        """Invoke ``handler`` for every message on ``subject``

        Args:
            subject: Subject, wildcards allowed
            handler: Sync or async callable receiving the raw ``Msg``
            queue: Optional queue group for load balancing

        Returns:
            Subscription: The nats-py subscription, for unsubscribe
        """
        log = self._logger

        async def cb(msg: Msg):
            try:
                result = handler(msg)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                (log or get_default_logger()).error(
                    f"subscribe handler error on {msg.subject}: {e}", exc_info=True
                )

        try:
            self._check_connections()
            return await self._nc.subscribe(subject, queue=queue, cb=cb)
        except Exception as e:
            raise self._fail("subscribe", e) from e
