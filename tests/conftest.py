"""Shared fixtures and fakes for the gesture signal tests."""

import asyncio
from typing import List, Optional, Tuple

import pytest


class FakeDatagramTransport:
    """In-memory stand-in for an asyncio datagram transport."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.sent: List[bytes] = []
        self.closed = False
        self.fail_with = fail_with
        self.protocol = None
        self.high_water = None

    def sendto(self, data: bytes, addr=None) -> None:
        if self.fail_with is not None and self.protocol is not None:
            self.protocol.error_received(self.fail_with)
            return
        self.sent.append(data)

    def set_write_buffer_limits(self, high=None, low=None) -> None:
        self.high_water = high

    def get_write_buffer_size(self) -> int:
        return 0

    def get_extra_info(self, name, default=None):
        return default

    def is_closing(self) -> bool:
        return self.closed

    def close(self) -> None:
        self.closed = True


def install_fake_endpoint(monkeypatch, transport=None, ready_reports=1, errors=()):
    """
    Replace the running loop's create_datagram_endpoint.

    The fake reports `ready_reports` connection_made calls, then each error
    in `errors` through error_received.
    """
    loop = asyncio.get_running_loop()
    transport = transport or FakeDatagramTransport()
    calls: List[Tuple] = []

    async def fake_create_datagram_endpoint(protocol_factory, local_addr=None, remote_addr=None, **kwargs):
        calls.append((local_addr, remote_addr))
        protocol = protocol_factory()
        transport.protocol = protocol
        for _ in range(ready_reports):
            protocol.connection_made(transport)
        for exc in errors:
            protocol.error_received(exc)
        return transport, protocol

    monkeypatch.setattr(loop, "create_datagram_endpoint", fake_create_datagram_endpoint)
    return transport, calls


class DatagramCollector(asyncio.DatagramProtocol):
    """Test-side UDP receiver."""

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()

    def datagram_received(self, data, addr):
        self.queue.put_nowait((data, addr))


async def open_collector():
    """Bind a collector on an ephemeral loopback port."""
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.create_datagram_endpoint(
        DatagramCollector, local_addr=("127.0.0.1", 0)
    )
    port = transport.get_extra_info("sockname")[1]
    return transport, protocol, port


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    def _run(coro, timeout: float = 5.0):
        async def _with_timeout():
            return await asyncio.wait_for(coro, timeout)
        return asyncio.run(_with_timeout())
    return _run
