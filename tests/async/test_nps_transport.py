"""UDP transport: retry budget, stray datagrams, decode failures, socket hygiene."""

import asyncio
import socket
import struct

import pytest

from nps_auth.radius.packet import RADIUSPacket
from nps_auth.radius.results import AuthResultCode
from nps_auth.radius.transport import UDPTransport
from tests.radius_helpers import (
    ACCESS_ACCEPT,
    ACCESS_CHALLENGE,
    ACCESS_REJECT,
    SECRET,
    attr,
    build_reply,
)


def _request() -> tuple[RADIUSPacket, bytes]:
    packet = RADIUSPacket.access_request()
    packet.add("User-Name", "alice")
    packet.add_message_authenticator()
    return packet, packet.pack(SECRET)


def _transport(port, socket_factory=None, *, retries=3, timeout_ms=150, secret=SECRET):
    return UDPTransport(
        "127.0.0.1",
        port,
        secret,
        timeout_ms=timeout_ms,
        max_retries=retries,
        socket_factory=socket_factory,
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_accept(fake_nps, socket_factory):
    server = fake_nps(lambda req, n: build_reply(ACCESS_ACCEPT, req, attr(11, b"ops")))
    request, data = _request()
    result = await _transport(server.port, socket_factory).exchange(request, data)

    assert result.code is AuthResultCode.ACCESS_ACCEPT
    assert result.response.get_string(11) == "ops"
    assert result.sends == 1
    assert len(socket_factory.created) == 1
    assert socket_factory.all_closed


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "code, expected",
    [
        (ACCESS_REJECT, AuthResultCode.ACCESS_REJECT),
        (ACCESS_CHALLENGE, AuthResultCode.ACCESS_CHALLENGE),
        (42, AuthResultCode.UNEXPECTED_RESPONSE),
    ],
)
async def test_reply_codes(fake_nps, code, expected):
    server = fake_nps(lambda req, n: build_reply(code, req))
    request, data = _request()
    result = await _transport(server.port).exchange(request, data)
    assert result.code is expected
    assert result.response is not None


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize("retries", [1, 3])
async def test_timeout_sends_exactly_max_retries(fake_nps, socket_factory, retries):
    server = fake_nps(lambda req, n: None)
    request, data = _request()
    result = await _transport(server.port, socket_factory, retries=retries, timeout_ms=100).exchange(
        request, data
    )

    assert result.code is AuthResultCode.TIMEOUT
    assert result.sends == retries
    await asyncio.sleep(0.05)
    assert len(server.requests) == retries
    # retransmissions are byte-identical
    assert all(r == data for r in server.requests)
    assert socket_factory.all_closed


@pytest.mark.asyncio
@pytest.mark.integration
async def test_answer_to_retransmission(fake_nps):
    server = fake_nps(lambda req, n: build_reply(ACCESS_ACCEPT, req) if n == 2 else None)
    request, data = _request()
    result = await _transport(server.port, timeout_ms=100).exchange(request, data)
    assert result.code is AuthResultCode.ACCESS_ACCEPT
    assert result.sends == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stray_identifier_is_ignored(fake_nps):
    def handler(req, n):
        stray = build_reply(ACCESS_REJECT, req, identifier=(req[1] + 1) % 256)
        return [stray, build_reply(ACCESS_ACCEPT, req)]

    server = fake_nps(handler)
    request, data = _request()
    result = await _transport(server.port).exchange(request, data)
    assert result.code is AuthResultCode.ACCESS_ACCEPT
    assert result.sends == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_datagram_from_other_port_is_ignored(silent_port, socket_factory):
    request, data = _request()
    transport = _transport(silent_port, socket_factory, retries=1, timeout_ms=300)
    task = asyncio.create_task(transport.exchange(request, data))
    while not socket_factory.created:
        await asyncio.sleep(0.01)
    client_port = socket_factory.created[0].getsockname()[1]

    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as intruder:
        intruder.sendto(build_reply(ACCESS_ACCEPT, data), ("127.0.0.1", client_port))
        result = await task

    assert result.code is AuthResultCode.TIMEOUT


@pytest.mark.asyncio
@pytest.mark.integration
async def test_bad_authenticator_is_terminal_decode_error(fake_nps, socket_factory):
    server = fake_nps(lambda req, n: build_reply(ACCESS_ACCEPT, req, secret=b"wrong"))
    request, data = _request()
    result = await _transport(server.port, socket_factory).exchange(request, data)

    assert result.code is AuthResultCode.DECODE_ERROR
    assert "authenticator" in result.error.lower()
    assert result.sends == 1
    await asyncio.sleep(0.05)
    assert len(server.requests) == 1
    assert socket_factory.all_closed


@pytest.mark.asyncio
@pytest.mark.integration
async def test_truncated_reply_is_decode_error(fake_nps):
    server = fake_nps(lambda req, n: struct.pack("!BB", ACCESS_ACCEPT, req[1]) + b"\x00" * 5)
    request, data = _request()
    result = await _transport(server.port).exchange(request, data)
    assert result.code is AuthResultCode.DECODE_ERROR


@pytest.mark.asyncio
async def test_unresolvable_host_is_socket_error(socket_factory):
    request, data = _request()
    transport = UDPTransport(
        "nonexistent.invalid", 1812, SECRET, timeout_ms=100, socket_factory=socket_factory
    )
    result = await transport.exchange(request, data)
    assert result.code is AuthResultCode.SOCKET_ERROR
    assert socket_factory.created == []


@pytest.mark.asyncio
async def test_socket_creation_failure_is_socket_error():
    def broken_factory(family, type_):
        raise OSError("no sockets left")

    request, data = _request()
    result = await _transport(1812, broken_factory).exchange(request, data)
    assert result.code is AuthResultCode.SOCKET_ERROR
    assert "no sockets left" in result.error


@pytest.mark.asyncio
@pytest.mark.integration
async def test_send_failure_retries_then_connection_error(socket_factory):
    request, data = _request()
    # a datagram larger than any UDP payload cannot be sent
    oversized = data + b"\x00" * 70_000
    result = await _transport(9, socket_factory, retries=3).exchange(request, oversized)

    assert result.code is AuthResultCode.CONNECTION_ERROR
    assert result.sends == 3
    assert socket_factory.all_closed


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_event(silent_port, socket_factory):
    request, data = _request()
    cancel = asyncio.Event()
    transport = _transport(silent_port, socket_factory, retries=3, timeout_ms=5000)
    task = asyncio.create_task(transport.exchange(request, data, cancel=cancel))
    await asyncio.sleep(0.05)
    cancel.set()
    result = await asyncio.wait_for(task, timeout=2)

    assert result.code is AuthResultCode.CANCELLED
    assert socket_factory.all_closed


@pytest.mark.asyncio
async def test_cancel_already_set_sends_nothing(socket_factory):
    request, data = _request()
    cancel = asyncio.Event()
    cancel.set()
    result = await _transport(1812, socket_factory).exchange(request, data, cancel=cancel)
    assert result.code is AuthResultCode.CANCELLED
    assert socket_factory.created == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_task_cancellation_closes_socket(silent_port, socket_factory):
    request, data = _request()
    transport = _transport(silent_port, socket_factory, retries=3, timeout_ms=5000)
    task = asyncio.create_task(transport.exchange(request, data))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert len(socket_factory.created) == 1
    assert socket_factory.all_closed


@pytest.mark.asyncio
async def test_host_with_empty_label_is_socket_error(socket_factory):
    request, data = _request()
    transport = UDPTransport("bad..host", 1812, SECRET, timeout_ms=100, socket_factory=socket_factory)
    result = await transport.exchange(request, data)
    assert result.code is AuthResultCode.SOCKET_ERROR
    assert socket_factory.created == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reply_from_other_host_on_server_port_is_ignored(silent_port, socket_factory):
    request, data = _request()
    transport = _transport(silent_port, socket_factory, retries=1, timeout_ms=300)
    task = asyncio.create_task(transport.exchange(request, data))
    while not socket_factory.created:
        await asyncio.sleep(0.01)
    client_port = socket_factory.created[0].getsockname()[1]

    # correctly signed reply, right port, wrong host
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as spoofer:
        spoofer.bind(("127.0.0.2", silent_port))
        spoofer.sendto(build_reply(ACCESS_ACCEPT, data), ("127.0.0.1", client_port))
        result = await task

    assert result.code is AuthResultCode.TIMEOUT
