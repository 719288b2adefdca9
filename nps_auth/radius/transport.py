"""
UDP transport for RADIUS Access-Requests.

One call to :meth:`UDPTransport.exchange` owns exactly one UDP socket. The
already-encoded request is sent, a listener task reads datagrams until a
reply with the matching identifier from the server's port arrives, and the
listener is raced against a per-attempt timer. On timeout the identical
bytes are re-sent until ``max_retries`` datagrams have gone out.

Terminal outcomes:
  - reply decoded and authenticated -> code of the reply
  - reply that fails to parse or authenticate -> DECODE_ERROR (no retry)
  - every send failed -> CONNECTION_ERROR
  - no reply after the last send -> TIMEOUT
  - socket creation/bind/receive or address resolution fault -> SOCKET_ERROR
  - caller's cancel event set -> CANCELLED

The socket is closed on every one of these paths, and also when the calling
task itself is cancelled (``asyncio.CancelledError`` propagates).
"""

import asyncio
import socket
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from nps_auth.exceptions import ProtocolError
from nps_auth.utils.logger import get_logger

from .constants import (
    MAX_RADIUS_PACKET_LENGTH,
    RADIUS_ACCESS_ACCEPT,
    RADIUS_ACCESS_CHALLENGE,
    RADIUS_ACCESS_REJECT,
)
from .packet import RADIUSPacket
from .results import AuthResultCode

logger = get_logger("nps_auth.radius.transport", component="radius")

SocketFactory = Callable[[int, int], socket.socket]

_REPLY_CODES = {
    RADIUS_ACCESS_ACCEPT: AuthResultCode.ACCESS_ACCEPT,
    RADIUS_ACCESS_REJECT: AuthResultCode.ACCESS_REJECT,
    RADIUS_ACCESS_CHALLENGE: AuthResultCode.ACCESS_CHALLENGE,
}


@dataclass
class TransportResult:
    """What came back from the wire for one request."""

    code: AuthResultCode
    response: RADIUSPacket | None = None
    error: str | None = None
    sends: int = 0


class UDPTransport:
    """Send one RADIUS request to one server with timeout and retransmission."""

    def __init__(
        self,
        host: str,
        port: int,
        secret: bytes,
        *,
        timeout_ms: int = 5000,
        max_retries: int = 3,
        socket_factory: SocketFactory | None = None,
    ):
        self.host = host
        self.port = port
        self.secret = secret
        self.timeout = timeout_ms / 1000.0
        self.max_retries = max(1, int(max_retries))
        self._socket_factory: SocketFactory = socket_factory or socket.socket

    async def _resolve(self, loop: asyncio.AbstractEventLoop) -> tuple[int, Any]:
        infos = await loop.getaddrinfo(
            self.host, self.port, type=socket.SOCK_DGRAM, proto=socket.IPPROTO_UDP
        )
        if not infos:
            raise OSError(f"No address found for {self.host}")
        family, _type, _proto, _canon, sockaddr = infos[0]
        return family, sockaddr

    def _open_socket(self, family: int) -> socket.socket:
        sock = self._socket_factory(family, socket.SOCK_DGRAM)
        try:
            sock.setblocking(False)
            sock.bind(("::", 0) if family == socket.AF_INET6 else ("0.0.0.0", 0))
        except OSError:
            sock.close()
            raise
        return sock

    async def _listen(
        self,
        loop: asyncio.AbstractEventLoop,
        sock: socket.socket,
        sockaddr: Any,
        request: RADIUSPacket,
    ) -> RADIUSPacket:
        """Read datagrams until the reply to ``request`` arrives."""
        while True:
            data, addr = await loop.sock_recvfrom(sock, MAX_RADIUS_PACKET_LENGTH)
            if addr[:2] != sockaddr[:2]:
                logger.debug(
                    "Ignoring datagram from unexpected source",
                    event="radius.transport.stray_source",
                    source=f"{addr[0]}:{addr[1]}",
                )
                continue
            if len(data) < 2 or data[1] != request.identifier:
                logger.debug(
                    "Ignoring RADIUS reply with mismatched identifier",
                    event="radius.response.id_mismatch",
                    got=data[1] if len(data) > 1 else None,
                    expected=request.identifier,
                )
                continue
            return RADIUSPacket.decode_response(data, request.authenticator, self.secret)

    async def exchange(
        self,
        request: RADIUSPacket,
        data: bytes,
        *,
        cancel: asyncio.Event | None = None,
    ) -> TransportResult:
        """Send ``data`` (the packed ``request``) and wait for its reply."""
        loop = asyncio.get_running_loop()
        if cancel is not None and cancel.is_set():
            return TransportResult(AuthResultCode.CANCELLED, error="cancelled")

        try:
            family, sockaddr = await self._resolve(loop)
        except (OSError, UnicodeError) as exc:
            # idna rejects empty or over-long labels with UnicodeError
            logger.warning(
                "RADIUS server address resolution failed",
                event="radius.transport.resolve_failed",
                error=str(exc),
            )
            return TransportResult(AuthResultCode.SOCKET_ERROR, error=str(exc))

        try:
            sock = self._open_socket(family)
        except OSError as exc:
            logger.error(
                "Failed to open RADIUS socket",
                event="radius.transport.socket_error",
                error=str(exc),
            )
            return TransportResult(AuthResultCode.SOCKET_ERROR, error=str(exc))

        listener = loop.create_task(self._listen(loop, sock, sockaddr, request))
        cancel_waiter = loop.create_task(cancel.wait()) if cancel is not None else None
        waiters = {t for t in (listener, cancel_waiter) if t is not None}
        sends = 0
        try:
            while True:
                sends += 1
                try:
                    await loop.sock_sendto(sock, data, sockaddr)
                except OSError as exc:
                    logger.warning(
                        "RADIUS send failed",
                        event="radius.transport.send_failed",
                        attempt=sends,
                        retries=self.max_retries,
                        error=str(exc),
                    )
                    if sends < self.max_retries:
                        continue
                    return TransportResult(
                        AuthResultCode.CONNECTION_ERROR, error=str(exc), sends=sends
                    )

                done, _pending = await asyncio.wait(
                    waiters, timeout=self.timeout, return_when=asyncio.FIRST_COMPLETED
                )
                if listener in done:
                    return self._complete(listener, sends)
                if cancel_waiter is not None and cancel_waiter in done:
                    logger.info(
                        "RADIUS request cancelled",
                        event="radius.transport.cancelled",
                        attempt=sends,
                    )
                    return TransportResult(
                        AuthResultCode.CANCELLED, error="cancelled", sends=sends
                    )

                logger.warning(
                    "RADIUS timeout",
                    event="radius.auth.timeout",
                    attempt=sends,
                    retries=self.max_retries,
                )
                if sends >= self.max_retries:
                    return TransportResult(
                        AuthResultCode.TIMEOUT,
                        error=f"no response after {sends} attempts",
                        sends=sends,
                    )
        finally:
            for task in waiters:
                task.cancel()
            try:
                await asyncio.gather(*waiters, return_exceptions=True)
            finally:
                sock.close()

    def _complete(self, listener: "asyncio.Task[RADIUSPacket]", sends: int) -> TransportResult:
        exc = listener.exception()
        if isinstance(exc, ProtocolError):
            logger.warning(
                "RADIUS response failed verification",
                event="radius.auth.verification_failed",
                error=str(exc),
            )
            return TransportResult(AuthResultCode.DECODE_ERROR, error=str(exc), sends=sends)
        if isinstance(exc, OSError):
            logger.error(
                "RADIUS socket error",
                event="radius.transport.socket_error",
                error=str(exc),
            )
            return TransportResult(AuthResultCode.SOCKET_ERROR, error=str(exc), sends=sends)
        if exc is not None:
            raise exc

        response = listener.result()
        code = _REPLY_CODES.get(response.code, AuthResultCode.UNEXPECTED_RESPONSE)
        logger.debug(
            "RADIUS reply received",
            event="radius.response.received",
            reply=response.code_name,
            attempt=sends,
        )
        return TransportResult(code, response=response, sends=sends)


__all__ = ["SocketFactory", "TransportResult", "UDPTransport"]
