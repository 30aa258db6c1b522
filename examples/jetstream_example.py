#!/usr/bin/env python
"""
JetStream Example

Declares a stream, publishes a few orders and consumes them with a durable
consumer. The handler fails on the first attempt of every odd order to show
redelivery on the backoff schedule.

Needs a JetStream enabled server: ``nats-server -js``
"""

import asyncio
import logging

from natstore import (
    JetStreamClient,
    NatsConfig,
    configure_logging,
    connect_from_config,
    with_backoff,
    with_durable_name,
    with_max_deliver,
)
from natstore.jetstream import generate_deterministic_msg_id

STREAM = "EXAMPLE_ORDERS"


async def handle_order(message):
    order = message.decode()
    if order["id"] % 2 and message.num_delivered == 1:
        raise RuntimeError(f"order {order['id']} not ready yet")
    print(f"✅ Processed order {order['id']} on attempt {message.num_delivered}")


async def main():
    configure_logging(logging.INFO, json_output=False)

    config = NatsConfig.from_env()
    nc = await connect_from_config(config)
    client = JetStreamClient(nc)

    try:
        await client.stream_create_or_update(name=STREAM, subjects=["example.orders.>"])

        for order_id in range(1, 5):
            ack = await client.publish(
                "example.orders.created",
                {"id": order_id},
                msg_id=generate_deterministic_msg_id(f"order-{order_id}"),
            )
            print(f"Published order {order_id}: stream={ack.stream} seq={ack.seq} duplicate={ack.duplicate}")

        handle = await client.consume(
            STREAM,
            "example.orders.created",
            handle_order,
            with_durable_name("example-worker"),
            with_backoff([1, 2]),
            with_max_deliver(3),
        )

        # long enough for the first redelivery round
        await asyncio.sleep(3)
        await handle.stop()
    finally:
        await client.delete_stream(STREAM)
        await nc.close()


if __name__ == "__main__":
    asyncio.run(main())
