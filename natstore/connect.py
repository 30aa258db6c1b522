"""
Connection bootstrap

Opens a nats-py connection with lifecycle callbacks that log disconnects,
reconnects and closes unless the caller brings its own.
"""

import logging
from typing import Any, List, Optional, Union

from nats.aio.client import Client as NATS

from natstore.config import NatsConfig
from natstore.errors import ConnectionError
from natstore.log import get_default_logger

DEFAULT_SERVER_URL = "nats://localhost:4222"


def _default_callbacks(nc: NATS, log: logging.Logger):
    async def disconnected_cb():
        log.error("nats client disconnected", extra={"error": str(nc.last_error)})

    async def reconnected_cb():
        log.info("nats client reconnected", extra={"url": _connected_url(nc)})

    async def closed_cb():
        log.error("nats client exiting", extra={"error": str(nc.last_error)})

    async def error_cb(err):
        log.error(f"nats error: {err}")

    return {
        "disconnected_cb": disconnected_cb,
        "reconnected_cb": reconnected_cb,
        "closed_cb": closed_cb,
        "error_cb": error_cb,
    }


def _connected_url(nc: NATS) -> Optional[str]:
    url = nc.connected_url
    return url.geturl() if url is not None else None


async def connect(server_url: Union[str, List[str], None], conn_name: str,
                  logger: Optional[logging.Logger] = None, **options: Any) -> NATS:
    """Connect to a NATS server

    Args:
        server_url: Server URL, comma separated URLs or a list of URLs;
            the local default server when empty
        conn_name: Connection name reported to the server, overrides any
            ``name`` in options
        logger: Logger for lifecycle callbacks
        **options: Extra ``nats.aio.client.Client.connect`` keyword arguments
            (auth, tls, reconnect tuning, callbacks)

    Returns:
        Client: A connected nats-py client

    Raises:
        ConnectionError: The connection could not be established
    """
    log = logger or get_default_logger()

    if not server_url:
        servers = [DEFAULT_SERVER_URL]
    elif isinstance(server_url, str):
        servers = [s.strip() for s in server_url.split(",") if s.strip()]
    else:
        servers = list(server_url)

    nc = NATS()
    for key, cb in _default_callbacks(nc, log).items():
        if options.get(key) is None:
            options[key] = cb
    options["name"] = conn_name or None
    options.pop("servers", None)

    try:
        await nc.connect(servers=servers, **options)
    except Exception as e:
        log.error(f"nats connection error: {e}", extra={"servers": servers})
        raise ConnectionError(f"nats connection error: {e}") from e

    if not nc.is_connected:
        raise ConnectionError("nats connection error: no nats connection established")

    log.info("nats client connected", extra={"url": _connected_url(nc), "connection_name": conn_name})
    return nc


async def connect_from_config(config: NatsConfig, logger: Optional[logging.Logger] = None,
                              **overrides: Any) -> NATS:
    """Connect using a :class:`NatsConfig`"""
    options = config.to_connect_options()
    options.update(overrides)
    servers = options.pop("servers")
    name = options.pop("name")
    return await connect(servers, name, logger=logger, **options)
