"""
JetStream client

Durable tier on top of a NATS connection: idempotent stream declaration,
acknowledged publish, and consumers with explicit acks, bounded redelivery
and backoff.
"""

import logging
import time
from typing import Any, Dict, Optional

from nats.aio.client import Client as NATS
from nats.js import JetStreamContext
from nats.js.api import AccountInfo, PubAck, StreamConfig, StreamInfo
from nats.js.errors import NotFoundError

from natstore.codec import DEFAULT_CODEC, Codec
from natstore.errors import (
    ERR_NIL_CONNECTION,
    ERR_NIL_CONTEXT,
    ERR_NIL_LOGGER,
    ERR_NOT_CONNECTED,
    ConnectionError,
    ContextCreationError,
    InvalidStreamConfigError,
    LoggerMissingError,
    NatstoreError,
    classify,
)
from natstore.jetstream.consumer import ConsumerConfigOption, build_consumer_config
from natstore.jetstream.subscription import (
    DEFAULT_FETCH_BATCH,
    DEFAULT_FETCH_TIMEOUT,
    ConsumerHandle,
    MessageHandler,
)
from natstore.log import get_default_logger
from natstore.telemetry.metrics import (
    PUBLISH_ERRORS,
    PUBLISH_LATENCY,
    PUBLISHED,
    increment_counter,
    record_latency,
)
from natstore.telemetry.tracer import inject_trace_headers

MSG_ID_HEADER = "Nats-Msg-Id"


class JetStreamClient:
    """Streams, publish and acknowledging consumers over one connection

    Args:
        nc: Connected nats-py client, not owned by this object
        codec: Payload codec, JSON when None
        logger: Logger receiving classified errors, package logger when None
        api_timeout: Timeout in seconds for JetStream API round-trips,
            nats-py default when None

    Raises:
        ConnectionError: ``nc`` is None
        ContextCreationError: the JetStream context could not be created
    """

    def __init__(self, nc: Optional[NATS], codec: Optional[Codec] = None,
                 logger: Optional[logging.Logger] = None,
                 api_timeout: Optional[float] = None):
        self._logger = logger or get_default_logger()
        if nc is None:
            raise classify("jetstream client", ConnectionError(ERR_NIL_CONNECTION), self._logger)

        try:
            if api_timeout is None:
                js = nc.jetstream()
            else:
                js = nc.jetstream(timeout=api_timeout)
        except Exception as e:
            raise classify(
                "jetstream client",
                ContextCreationError(f"error creating jetstream context: {e}"),
                self._logger,
            ) from e

        self._nc = nc
        self._js: Optional[JetStreamContext] = js
        self.codec = codec or DEFAULT_CODEC

    def with_logger(self, logger: Optional[logging.Logger]) -> "JetStreamClient":
        """Replace the logger, returns self for chaining"""
        self._logger = logger
        return self

    @property
    def nc(self) -> NATS:
        return self._nc

    @property
    def js(self) -> JetStreamContext:
        """Raw JetStream context

        Bypasses this client's precondition checks and error classification;
        use for operations it does not wrap.
        """
        return self._js

    def _check_connections(self):
        if self._nc is None:
            raise ConnectionError(ERR_NIL_CONNECTION)
        if not self._nc.is_connected:
            raise ConnectionError(ERR_NOT_CONNECTED)
        if self._js is None:
            raise ContextCreationError(ERR_NIL_CONTEXT)
        if self._logger is None:
            raise LoggerMissingError(ERR_NIL_LOGGER)

    def _fail(self, location: str, err: BaseException) -> NatstoreError:
        return classify(location, err, self._logger)

    async def stream_create_or_update(self, config: Optional[StreamConfig] = None,
                                      **params: Any) -> StreamInfo:
        """Create a stream, or update it to match when it already exists

        Args:
            config: Stream definition
            **params: StreamConfig fields, applied over ``config``

        Returns:
            StreamInfo: The stream as stored by the broker
        """
        location = "stream create update"
        try:
            self._check_connections()
            config = (config or StreamConfig()).evolve(**params)
            if not config.name:
                raise InvalidStreamConfigError("stream name is required")

            try:
                await self._js.stream_info(config.name)
            except NotFoundError:
                info = await self._js.add_stream(config)
                self._logger.info(f"Created JetStream stream: {config.name}")
                return info

            info = await self._js.update_stream(config)
            self._logger.info(f"Updated JetStream stream: {config.name}")
            return info
        except Exception as e:
            raise self._fail(location, e) from e

    async def stream_info(self, name: str) -> StreamInfo:
        """Look up a stream by name"""
        try:
            self._check_connections()
            return await self._js.stream_info(name)
        except Exception as e:
            raise self._fail("stream info", e) from e

    async def delete_stream(self, name: str) -> bool:
        """Delete a stream and every message in it"""
        try:
            self._check_connections()
            deleted = await self._js.delete_stream(name)
        except Exception as e:
            raise self._fail("stream delete", e) from e

        self._logger.info(f"Deleted JetStream stream: {name}")
        return deleted

    async def account_info(self) -> AccountInfo:
        """JetStream account usage and limits

        Also a cheap way to find out whether the broker runs JetStream at all:
        it raises PersistenceUnavailableError when it does not.
        """
        try:
            self._check_connections()
            return await self._js.account_info()
        except Exception as e:
            raise self._fail("account info", e) from e

    async def publish(self, subject: str, data: Any, msg_id: Optional[str] = None,
                      headers: Optional[Dict[str, str]] = None) -> PubAck:
        """Encode ``data`` and store it in the stream bound to ``subject``

        Args:
            subject: Subject covered by some stream's subject filters
            data: Payload, encoded with the codec
            msg_id: De-duplication id, see ``generate_deterministic_msg_id``
            headers: Extra message headers

        Returns:
            PubAck: Stream name and sequence assigned by the broker

        Raises:
            NoStreamError: no stream accepts ``subject``
            NatstoreError: any other failure
        """
        start_time = time.time()
        try:
            self._check_connections()
            payload = self.codec.serialize(data)

            hdrs = dict(headers or {})
            if msg_id:
                hdrs[MSG_ID_HEADER] = msg_id
            hdrs = inject_trace_headers(hdrs)

            ack = await self._js.publish(subject, payload, headers=hdrs)
        except Exception as e:
            increment_counter(PUBLISH_ERRORS, 1, {"subject": subject})
            raise self._fail("publish", e) from e

        record_latency(PUBLISH_LATENCY, (time.time() - start_time) * 1000, {"stream": ack.stream})
        increment_counter(PUBLISHED, 1, {"subject": subject, "tier": "jetstream"})
        if ack.duplicate:
            self._logger.debug(f"duplicate publish on {subject} dropped by stream {ack.stream}, seq {ack.seq}")
        return ack

    async def consume(self, stream_name: str, subject: str, handler: MessageHandler,
                      *options: Optional[ConsumerConfigOption],
                      fetch_batch: int = DEFAULT_FETCH_BATCH,
                      fetch_timeout: float = DEFAULT_FETCH_TIMEOUT) -> ConsumerHandle:
        """Create or resume a consumer and start delivering to ``handler``

            handle = await client.consume("auth", "user.signup", notify_user,
                                          with_durable_name("mailer"))

        Args:
            stream_name: Stream the consumer reads
            subject: Filter subject within the stream
            handler: Sync or async callable receiving a ``Message``
            *options: Consumer options, applied in order
            fetch_batch: Messages pulled per round-trip
            fetch_timeout: Seconds a pull waits for messages

        Returns:
            ConsumerHandle: Running consumer; ``await handle.stop()`` ends it

        Raises:
            InvalidConsumerConfigError: options produce an invalid config
            NatstoreError: consumer creation or subscription failed
        """
        location = "consume"
        try:
            self._check_connections()
            config = build_consumer_config(subject, *options)

            info = await self._js.add_consumer(stream_name, config.to_nats())
            sub = await self._js.pull_subscribe_bind(durable=info.name, stream=stream_name)
        except Exception as e:
            raise self._fail(location, e) from e

        handle = ConsumerHandle(
            stream=stream_name,
            config=config,
            info=info,
            subscription=sub,
            handler=handler,
            codec=self.codec,
            logger=self._logger,
            fetch_batch=fetch_batch,
            fetch_timeout=fetch_timeout,
        )
        try:
            handle.start()
        except Exception as e:
            raise self._fail(location, e) from e

        self._logger.info(
            f"Consuming {stream_name}/{subject} with consumer {info.name}",
            extra={"durable": config.durable_name is not None},
        )
        return handle
