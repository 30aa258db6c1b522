#!/usr/bin/env python
"""
Basic Messaging Example

Request/reply and fire-and-forget publish over core NATS subjects.
"""

import asyncio
import logging

from natstore import Basic, RequestTimeoutError, configure_logging, connect


async def main():
    configure_logging(logging.INFO, json_output=False)

    nc = await connect("nats://localhost:4222", "basic-example")
    basic = Basic(nc)

    async def echo(msg):
        await msg.respond(msg.data)

    sub = await basic.subscribe("example.echo", echo)
    try:
        reply = await basic.request("example.echo", {"message": "Hello, World!"}, timeout=1.0)
        print(f"Reply: {reply}")

        try:
            await basic.request("example.nobody", {"message": "anyone?"})
        except RequestTimeoutError as e:
            print(f"Expected failure: {e}")

        await basic.publish("example.events", {"event": "done"})
    finally:
        await sub.unsubscribe()
        await nc.close()


if __name__ == "__main__":
    asyncio.run(main())
