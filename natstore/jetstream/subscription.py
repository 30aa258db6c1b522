"""
Consumer delivery loop

Pulls batches from a bound pull subscription and hands each message to the
user handler. A handler that returns normally gets its message acknowledged;
one that raises leaves the message unacknowledged so the broker redelivers it
on the consumer's backoff schedule until ``max_deliver`` is spent.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from nats.aio.msg import Msg
from nats.errors import TimeoutError as NatsTimeoutError
from nats.js.api import ConsumerInfo

from natstore.codec import Codec
from natstore.jetstream.consumer import ConsumerConfig
from natstore.jetstream.utils import BackoffTimer, redelivery_delay
from natstore.telemetry.metrics import (
    DELIVERED,
    HANDLER_ERRORS,
    REDELIVERED,
    increment_counter,
)
from natstore.telemetry.tracer import create_span, extract_trace_context

DEFAULT_FETCH_BATCH = 10
DEFAULT_FETCH_TIMEOUT = 1.0  # seconds


class Message:
    """Transient view of one delivery attempt"""

    def __init__(self, msg: Msg, codec: Codec):
        self._msg = msg
        self._codec = codec
        self._responded = False

    @property
    def subject(self) -> str:
        return self._msg.subject

    @property
    def data(self) -> bytes:
        return self._msg.data

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return self._msg.headers

    @property
    def num_delivered(self) -> int:
        """Delivery attempt count, 1 on first delivery"""
        return self._msg.metadata.num_delivered

    @property
    def stream_sequence(self) -> int:
        return self._msg.metadata.sequence.stream

    @property
    def raw(self) -> Msg:
        """The nats-py message"""
        return self._msg

    @property
    def responded(self) -> bool:
        """Whether ack, nak or term was already sent"""
        return self._responded

    def decode(self, into: Optional[Any] = None) -> Any:
        """Decode the payload with the client codec"""
        return self._codec.deserialize(self._msg.data, into)

    async def ack(self):
        await self._msg.ack()
        self._responded = True

    async def nak(self, delay: Optional[float] = None):
        """Ask for redelivery, after ``delay`` seconds when given"""
        await self._msg.nak(delay=delay)
        self._responded = True

    async def term(self):
        """Stop redelivery of this message for good"""
        await self._msg.term()
        self._responded = True

    async def in_progress(self):
        """Reset the ack-wait timer while work continues"""
        await self._msg.in_progress()


MessageHandler = Callable[[Message], Union[None, Awaitable[None]]]


class ConsumerHandle:
    """Running consumer returned by ``JetStreamClient.consume``

    The delivery loop lives in its own task. :meth:`stop` cancels it and
    unsubscribes; a durable consumer stays on the broker and can be resumed
    by consuming again with the same durable name.
    """

    def __init__(self,
                 stream: str,
                 config: ConsumerConfig,
                 info: ConsumerInfo,
                 subscription: Any,
                 handler: MessageHandler,
                 codec: Codec,
                 logger: logging.Logger,
                 fetch_batch: int = DEFAULT_FETCH_BATCH,
                 fetch_timeout: float = DEFAULT_FETCH_TIMEOUT):
        self.stream = stream
        self.config = config
        self.info = info
        self._sub = subscription
        self._handler = handler
        self._codec = codec
        self._logger = logger
        self.fetch_batch = fetch_batch
        self.fetch_timeout = fetch_timeout

        self._task: Optional[asyncio.Task] = None
        self._stopped = False
        self.backoff = BackoffTimer()

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "ConsumerHandle":
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self

    async def _run(self):
        while not self._stopped:
            try:
                messages = await self._sub.fetch(batch=self.fetch_batch, timeout=self.fetch_timeout)
            except (NatsTimeoutError, asyncio.TimeoutError):
                # nothing pending
                continue
            except Exception as e:
                if self._stopped:
                    break
                self._logger.error(f"consumer {self.name}: fetch failed: {e}")
                await self.backoff.sleep()
                continue

            self.backoff.reset()
            for msg in messages:
                await self._dispatch(msg)

    async def _dispatch(self, msg: Msg):
        message = Message(msg, self._codec)
        attempt = message.num_delivered
        attributes = {"stream": self.stream, "consumer": self.name}

        increment_counter(DELIVERED, 1, attributes)
        if attempt > 1:
            increment_counter(REDELIVERED, 1, attributes)

        try:
            with create_span(f"consume {message.subject}",
                             context=extract_trace_context(message.headers),
                             attributes={"messaging.destination": message.subject,
                                         "messaging.delivery_attempt": attempt}):
                result = self._handler(message)
                if inspect.isawaitable(result):
                    await result
        except Exception as e:
            increment_counter(HANDLER_ERRORS, 1, attributes)
            if attempt >= self.config.max_deliver:
                self._logger.error(
                    f"consumer {self.name}: handler failed on final attempt {attempt}/{self.config.max_deliver} "
                    f"for {message.subject} (seq {message.stream_sequence}), no further redelivery: {e}"
                )
            else:
                delay = redelivery_delay(self.config.backoff, attempt)
                self._logger.warning(
                    f"consumer {self.name}: handler failed on attempt {attempt}/{self.config.max_deliver} "
                    f"for {message.subject}, redelivery in {delay}s: {e}"
                )
            return

        if not message.responded:
            try:
                await message.ack()
            except Exception as e:
                self._logger.error(f"consumer {self.name}: ack failed for {message.subject}: {e}")

    async def stop(self):
        """Cancel the delivery loop and drop the subscription"""
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        try:
            await self._sub.unsubscribe()
        except Exception as e:
            self._logger.warning(f"consumer {self.name}: unsubscribe failed: {e}")

    async def wait(self):
        """Block until the delivery loop ends"""
        if self._task is not None:
            await self._task
