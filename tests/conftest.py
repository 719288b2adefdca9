"""
Test configuration and fixtures.

RADIUS tests talk to a real in-process UDP responder on 127.0.0.1 (FakeNPS)
instead of mocking the transport.
"""

from __future__ import annotations

import logging
import socket
from collections.abc import Callable, Iterator

import pytest

from tests.radius_helpers import CountingSocketFactory, FakeNPS, Handler


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host RADIUS_*/SESSION_SECRET settings out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("RADIUS_") or key in ("SESSION_SECRET", "NPS_AUTH_CONFIG"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _debug_logging(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="nps_auth")


@pytest.fixture
def fake_nps() -> Iterator[Callable[[Handler], FakeNPS]]:
    servers: list[FakeNPS] = []

    def _start(handler: Handler) -> FakeNPS:
        server = FakeNPS(handler).start()
        servers.append(server)
        return server

    yield _start
    for server in servers:
        server.stop()


@pytest.fixture
def silent_port() -> Iterator[int]:
    """A bound UDP port on 127.0.0.1 that never answers."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    try:
        yield sock.getsockname()[1]
    finally:
        sock.close()


@pytest.fixture
def socket_factory() -> CountingSocketFactory:
    return CountingSocketFactory()
