"""
Shared fixtures

Unit tests run against MagicMock/AsyncMock stand-ins for the nats-py client
and JetStream context. Integration tests start a real ``nats-server`` process
and are skipped when the binary is not installed.
"""

import asyncio
import os
import shutil
import socket
import subprocess
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from nats.errors import TimeoutError as NatsTimeoutError

NATS_HOST = "127.0.0.1"
NATS_PORT = int(os.environ.get("NATSTORE_TEST_NATS_PORT", "14222"))

JS_METHODS = (
    "stream_info",
    "add_stream",
    "update_stream",
    "delete_stream",
    "account_info",
    "publish",
    "add_consumer",
    "pull_subscribe_bind",
)


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: needs a nats-server binary")


@pytest.fixture
def stub_nc():
    """Connected NATS client stub whose jetstream() returns a stub context"""
    nc = MagicMock()
    nc.is_connected = True
    nc.publish = AsyncMock()
    nc.request = AsyncMock()
    nc.subscribe = AsyncMock()

    js = MagicMock()
    for name in JS_METHODS:
        setattr(js, name, AsyncMock())
    nc.jetstream.return_value = js
    return nc


class StubPullSubscription:
    """Pull subscription handing out prepared batches, then idling"""

    def __init__(self, batches=None):
        self.batches = list(batches or [])
        self.fetch_calls = 0
        self.unsubscribed = False

    async def fetch(self, batch=1, timeout=None):
        self.fetch_calls += 1
        if self.batches:
            item = self.batches.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        await asyncio.sleep(0.01)
        raise NatsTimeoutError

    async def unsubscribe(self):
        self.unsubscribed = True


@pytest.fixture
def make_pull_subscription():
    return StubPullSubscription


@pytest.fixture
def make_js_msg():
    """Factory for JetStream message stubs"""
    def factory(subject="orders.created", data=b'{"id": 1}', num_delivered=1, seq=1, headers=None):
        msg = MagicMock()
        msg.subject = subject
        msg.data = data
        msg.headers = headers
        msg.metadata = SimpleNamespace(
            num_delivered=num_delivered,
            sequence=SimpleNamespace(stream=seq, consumer=seq),
        )
        msg.ack = AsyncMock()
        msg.nak = AsyncMock()
        msg.term = AsyncMock()
        msg.in_progress = AsyncMock()
        return msg
    return factory


@pytest.fixture
def eventually():
    """Await until a predicate holds or the timeout runs out"""
    async def wait(predicate, timeout=2.0, interval=0.01):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            await asyncio.sleep(interval)
        return predicate()
    return wait


def _wait_for_port(host, port, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            with socket.create_connection((host, port), timeout=0.2):
                return True
        except OSError:
            time.sleep(0.05)
    return False


def _start_nats_server(port, store_dir=None):
    binary = shutil.which("nats-server")
    if binary is None:
        pytest.skip("nats-server command not available")

    args = [binary, "-a", NATS_HOST, "-p", str(port)]
    if store_dir is not None:
        args += ["-js", "-sd", str(store_dir)]

    process = subprocess.Popen(args, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    if not _wait_for_port(NATS_HOST, port):
        process.terminate()
        pytest.skip("Unable to start NATS server")
    return process


def _stop_nats_server(process):
    process.terminate()
    try:
        process.wait(timeout=5)
    except subprocess.TimeoutExpired:
        process.kill()


@pytest.fixture(scope="session")
def nats_url(tmp_path_factory):
    """URL of a JetStream enabled nats-server"""
    process = _start_nats_server(NATS_PORT, tmp_path_factory.mktemp("jetstream"))
    yield f"nats://{NATS_HOST}:{NATS_PORT}"
    _stop_nats_server(process)


@pytest.fixture(scope="session")
def plain_nats_url():
    """URL of a nats-server without JetStream"""
    process = _start_nats_server(NATS_PORT + 1)
    yield f"nats://{NATS_HOST}:{NATS_PORT + 1}"
    _stop_nats_server(process)
