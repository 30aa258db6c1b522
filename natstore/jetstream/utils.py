"""
JetStream helper utilities

Backoff timing for the delivery loop, the broker's redelivery schedule, and
deterministic message ids for publish de-duplication.
"""

import asyncio
import hashlib
import random
from typing import Optional, Sequence


def generate_deterministic_msg_id(key: str, attempt: int = 0) -> str:
    """Generate deterministic message ID

    The same key and attempt always map to the same ``Nats-Msg-Id``, so a
    retried publish is dropped by the stream's duplicate window.

    Args:
        key: Business key of the message (task id, event id, ...)
        attempt: Attempt count

    Returns:
        str: Message ID
    """
    combined = f"{key}:{attempt}"
    return hashlib.sha256(combined.encode()).hexdigest()[:32]


def redelivery_delay(backoff: Sequence[float], num_delivered: int) -> Optional[float]:
    """Delay the broker waits before redelivering an unacknowledged message

    Entry ``i`` of the backoff schedule is the delay before delivery
    ``i + 2``; past the end of the schedule the last entry repeats.

    Args:
        backoff: Backoff schedule in seconds
        num_delivered: Deliveries made so far (1 on first delivery)

    Returns:
        float: Seconds until the next delivery, None with an empty schedule
    """
    if not backoff:
        return None
    index = min(max(num_delivered, 1) - 1, len(backoff) - 1)
    return float(backoff[index])


class BackoffTimer:
    """Capped exponential delay between failed fetches, in seconds"""

    def __init__(self, initial: float = 0.1, maximum: float = 10.0,
                 factor: float = 1.5, jitter: float = 0.1):
        self.initial = initial
        self.maximum = maximum
        self.factor = factor
        self.jitter = jitter
        self.failures = 0

    def reset(self):
        self.failures = 0

    def next_delay(self) -> float:
        delay = min(self.initial * self.factor ** self.failures, self.maximum)
        self.failures += 1
        return delay * random.uniform(1 - self.jitter, 1 + self.jitter)

    async def sleep(self):
        await asyncio.sleep(self.next_delay())
