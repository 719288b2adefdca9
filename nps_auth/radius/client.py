"""
RADIUS client for administrative logins against Windows NPS.

RadiusAuthService builds one Access-Request per login, hands the encoded
bytes to the UDP transport and turns whatever comes back into an
``AuthResult``. MS-CHAPv2 (RFC 2759 inside RFC 2548 vendor attributes) is
the default; PAP with RFC 2865 password hiding is available for servers
whose network policy only allows it.

Request attributes, in order:
  - User-Name, NAS-Identifier, NAS-Port-Type (Ethernet), Service-Type (Framed)
  - MS-CHAP-Challenge + MS-CHAP2-Response, or User-Password for PAP
  - Message-Authenticator (RFC 3579) unless disabled

On an Access-Accept the MS-CHAP2-Success value is checked against the
expected authenticator response; with ``require_mutual_auth`` a missing or
wrong value fails the login.
"""

import asyncio
import uuid
from dataclasses import dataclass

from nps_auth.config.schema import RadiusServerConfig
from nps_auth.exceptions import EncodeError
from nps_auth.mschap import (
    build_mschap2_response,
    check_authenticator_response,
    generate_nt_response,
    new_challenge,
)
from nps_auth.utils.logger import bind_context, clear_context, get_logger

from .constants import (
    MS_CHAP2_SUCCESS,
    NAS_PORT_TYPE_ETHERNET,
    SERVICE_TYPE_FRAMED,
    VENDOR_MICROSOFT,
)
from .groups import extract_groups
from .packet import RADIUSPacket
from .results import AuthResult, AuthResultCode
from .transport import SocketFactory, TransportResult, UDPTransport

logger = get_logger("nps_auth.radius.client", component="radius")

HEALTH_CHECK_USERNAME = "__radius_health_check__"
HEALTH_CHECK_PASSWORD = "__test__"

_MESSAGES = {
    AuthResultCode.ACCESS_ACCEPT: "RADIUS authentication successful",
    AuthResultCode.ACCESS_REJECT: "Invalid credentials",
    AuthResultCode.ACCESS_CHALLENGE: (
        "Authentication requires an additional challenge (not supported)"
    ),
    AuthResultCode.TIMEOUT: "RADIUS server did not respond (timeout)",
    AuthResultCode.CANCELLED: "RADIUS authentication cancelled",
}


@dataclass(frozen=True)
class _MSCHAPv2Exchange:
    """Values needed to verify the server's MS-CHAP2-Success proof."""

    auth_challenge: bytes
    peer_challenge: bytes
    nt_response: bytes


class RadiusAuthService:
    """Authenticate users against one RADIUS server."""

    def __init__(
        self,
        config: RadiusServerConfig,
        *,
        require_mutual_auth: bool = False,
        socket_factory: SocketFactory | None = None,
    ):
        self.config = config
        self.require_mutual_auth = require_mutual_auth
        self._socket_factory = socket_factory

    @property
    def server(self) -> str:
        return self.config.address

    def _transport(self, max_retries: int | None = None) -> UDPTransport:
        return UDPTransport(
            self.config.host,
            self.config.port,
            self.config.shared_secret.encode("utf-8"),
            timeout_ms=self.config.timeout_ms,
            max_retries=max_retries or self.config.max_retries,
            socket_factory=self._socket_factory,
        )

    def build_request(
        self, username: str, password: str
    ) -> tuple[RADIUSPacket, _MSCHAPv2Exchange | None]:
        """Build the Access-Request for one login.

        Challenges are generated here, once per login; retransmissions reuse
        the packed bytes.
        """
        packet = RADIUSPacket.access_request()
        packet.add("User-Name", username)
        packet.add("NAS-Identifier", self.config.nas_identifier)
        packet.add("NAS-Port-Type", NAS_PORT_TYPE_ETHERNET)
        packet.add("Service-Type", SERVICE_TYPE_FRAMED)

        exchange = None
        if self.config.auth_method == "pap":
            packet.add("User-Password", password.encode("utf-8"))
        else:
            auth_challenge = new_challenge()
            peer_challenge = new_challenge()
            nt_response = generate_nt_response(
                auth_challenge, peer_challenge, username, password
            )
            packet.add("MS-CHAP-Challenge", auth_challenge)
            packet.add(
                "MS-CHAP2-Response", build_mschap2_response(peer_challenge, nt_response)
            )
            exchange = _MSCHAPv2Exchange(auth_challenge, peer_challenge, nt_response)

        if self.config.message_authenticator:
            packet.add_message_authenticator()
        return packet, exchange

    def _encode(self, packet: RADIUSPacket) -> bytes:
        return packet.pack(self.config.shared_secret.encode("utf-8"))

    async def authenticate(
        self,
        username: str,
        password: str,
        *,
        cancel: asyncio.Event | None = None,
    ) -> AuthResult:
        """Run one login against this server. Never raises (except CancelledError)."""
        ctx = bind_context(
            connection_id=str(uuid.uuid4()),
            radius_server=self.server,
            service="radius",
            username=username,
        )
        try:
            try:
                request, exchange = self.build_request(username, password)
                data = self._encode(request)
            except ValueError as exc:  # EncodeError, unencodable username/password
                logger.error(
                    "Failed to encode RADIUS request",
                    event="radius.request.encode_failed",
                    error=str(exc),
                )
                return AuthResult(
                    success=False,
                    message=f"Failed to encode RADIUS request: {exc}",
                    code=AuthResultCode.ENCODE_ERROR,
                    server=self.server,
                )

            logger.debug(
                "Sending RADIUS Access-Request",
                event="radius.request.sending",
                identifier=request.identifier,
                auth_method=self.config.auth_method,
            )
            outcome = await self._transport().exchange(request, data, cancel=cancel)
            result = self._to_result(outcome, username, password, exchange)
            self._log_result(result)
            return result
        finally:
            clear_context(ctx)

    def _to_result(
        self,
        outcome: TransportResult,
        username: str,
        password: str,
        exchange: _MSCHAPv2Exchange | None,
    ) -> AuthResult:
        code = outcome.code
        response = outcome.response
        if response is None:
            return AuthResult(
                success=False,
                message=_failure_message(code, outcome.error),
                code=code,
                server=self.server,
            )

        attributes = response.decode_attributes()
        if code is not AuthResultCode.ACCESS_ACCEPT:
            message = _MESSAGES.get(code) or f"Unexpected RADIUS response: {response.code}"
            return AuthResult(
                success=False,
                message=message,
                code=code,
                attributes=attributes,
                server=self.server,
            )

        mutual_auth = None
        if exchange is not None:
            mutual_auth = self._check_mutual_auth(response, username, password, exchange)
            if self.require_mutual_auth and mutual_auth is not True:
                return AuthResult(
                    success=False,
                    message="RADIUS server failed MS-CHAPv2 mutual authentication",
                    code=AuthResultCode.DECODE_ERROR,
                    attributes=attributes,
                    server=self.server,
                    mutual_auth=mutual_auth,
                )

        return AuthResult(
            success=True,
            message=_MESSAGES[AuthResultCode.ACCESS_ACCEPT],
            code=code,
            attributes=attributes,
            groups=extract_groups(attributes),
            server=self.server,
            mutual_auth=mutual_auth,
        )

    def _check_mutual_auth(
        self,
        response: RADIUSPacket,
        username: str,
        password: str,
        exchange: _MSCHAPv2Exchange,
    ) -> bool | None:
        proof = response.get_vsa(VENDOR_MICROSOFT, MS_CHAP2_SUCCESS)
        if proof is None:
            logger.debug(
                "Access-Accept without MS-CHAP2-Success",
                event="radius.mschapv2.no_success_attribute",
            )
            return None
        ok = check_authenticator_response(
            proof,
            password,
            exchange.nt_response,
            exchange.peer_challenge,
            exchange.auth_challenge,
            username,
        )
        if not ok:
            logger.warning(
                "MS-CHAP2-Success authenticator response mismatch",
                event="radius.mschapv2.mutual_auth_failed",
            )
        return ok

    def _log_result(self, result: AuthResult) -> None:
        if result.success:
            logger.info(
                "RADIUS authentication successful",
                event="radius.auth.success",
                groups=result.groups,
                mutual_auth=result.mutual_auth,
            )
        elif result.code is AuthResultCode.ACCESS_REJECT:
            logger.warning("RADIUS authentication rejected", event="radius.auth.failed")
        else:
            logger.warning(
                "RADIUS authentication error",
                event="radius.auth.error",
                code=result.code.value,
                detail=result.message,
            )

    async def test_connection(self, *, cancel: asyncio.Event | None = None) -> AuthResult:
        """Health probe: is the server reachable and does the secret match?

        Sends a single PAP Access-Request for a dummy user. Any reply that
        passes the Response Authenticator check counts as success, whatever
        its code (an Access-Reject is the normal answer).
        """
        request = RADIUSPacket.access_request()
        try:
            request.add("User-Name", HEALTH_CHECK_USERNAME)
            request.add("User-Password", HEALTH_CHECK_PASSWORD.encode("utf-8"))
            request.add("NAS-Identifier", self.config.nas_identifier)
            if self.config.message_authenticator:
                request.add_message_authenticator()
            data = self._encode(request)
        except EncodeError as exc:
            return AuthResult(
                success=False,
                message=f"Failed to prepare health check: {exc}",
                code=AuthResultCode.ENCODE_ERROR,
                server=self.server,
            )

        outcome = await self._transport(max_retries=1).exchange(
            request, data, cancel=cancel
        )
        if outcome.response is not None:
            logger.info(
                "RADIUS health check answered",
                event="radius.health.ok",
                radius_server=self.server,
                reply=outcome.response.code_name,
            )
            return AuthResult(
                success=True,
                message=f"RADIUS server responded ({outcome.response.code_name})",
                code=outcome.code,
                server=self.server,
            )
        if outcome.code is AuthResultCode.DECODE_ERROR:
            message = "Server responded but the reply could not be decoded (check shared secret)"
        elif outcome.code is AuthResultCode.TIMEOUT:
            message = "RADIUS server did not respond"
        else:
            message = _failure_message(outcome.code, outcome.error)
        logger.warning(
            "RADIUS health check failed",
            event="radius.health.failed",
            radius_server=self.server,
            code=outcome.code.value,
        )
        return AuthResult(
            success=False, message=message, code=outcome.code, server=self.server
        )


def _failure_message(code: AuthResultCode, error: str | None) -> str:
    if code in _MESSAGES:
        return _MESSAGES[code]
    labels = {
        AuthResultCode.CONNECTION_ERROR: "RADIUS connection error",
        AuthResultCode.DECODE_ERROR: "Failed to decode RADIUS response",
        AuthResultCode.SOCKET_ERROR: "RADIUS socket error",
    }
    label = labels.get(code, "RADIUS error")
    return f"{label}: {error}" if error else label


__all__ = [
    "HEALTH_CHECK_USERNAME",
    "HEALTH_CHECK_PASSWORD",
    "AuthResult",
    "AuthResultCode",
    "RadiusAuthService",
]
