"""
Primary/secondary RADIUS failover.

The primary server is always tried first. Its answer is final when the
login succeeded, was rejected or was cancelled. Any other outcome (timeout,
socket or decode failure, unsupported challenge, undecryptable secret)
moves on to the secondary server when one is configured with its own
secret. The two attempts run one after the other, each with its own retry
budget.
"""

import asyncio
from collections.abc import Callable

from nps_auth.config.schema import DEFAULT_AUTH_PORT, RadiusSettings
from nps_auth.utils.logger import get_logger
from nps_auth.utils.secret_store import decrypt_secret

from .client import RadiusAuthService
from .results import AuthResult, AuthResultCode
from .transport import SocketFactory

logger = get_logger("nps_auth.radius.failover", component="radius")

Decrypt = Callable[[str], str]

PRIMARY = "primary"
SECONDARY = "secondary"


def _is_authoritative(result: AuthResult) -> bool:
    return result.success or result.code in (
        AuthResultCode.ACCESS_REJECT,
        AuthResultCode.CANCELLED,
    )


async def _attempt(
    settings: RadiusSettings,
    role: str,
    encrypted_secret: str,
    username: str,
    password: str,
    *,
    decrypt: Decrypt,
    cancel: asyncio.Event | None,
    socket_factory: SocketFactory | None,
) -> AuthResult:
    # decrypt is host-supplied; any failure here is a configuration problem
    try:
        secret = decrypt(encrypted_secret)
        config = settings.server_config(role, secret)
    except Exception as exc:
        logger.error(
            "Unusable RADIUS server configuration",
            event="radius.failover.config_error",
            role=role,
            error_type=type(exc).__name__,
        )
        return AuthResult(
            success=False,
            message=f"RADIUS {role} server configuration error: {type(exc).__name__}",
            code=AuthResultCode.CONFIG_ERROR,
            used_server=role,
        )

    service = RadiusAuthService(
        config,
        require_mutual_auth=settings.require_mutual_auth,
        socket_factory=socket_factory,
    )
    result = await service.authenticate(username, password, cancel=cancel)
    result.used_server = role
    return result


async def authenticate_with_failover(
    settings: RadiusSettings,
    username: str,
    password: str,
    *,
    decrypt: Decrypt = decrypt_secret,
    cancel: asyncio.Event | None = None,
    socket_factory: SocketFactory | None = None,
) -> AuthResult:
    """Authenticate against the primary server, falling back to the secondary."""
    logger.info(
        "Trying primary RADIUS server",
        event="radius.failover.primary",
        radius_server=f"{settings.primary_host}:{settings.primary_port}",
    )
    primary = await _attempt(
        settings,
        PRIMARY,
        settings.shared_secret_encrypted,
        username,
        password,
        decrypt=decrypt,
        cancel=cancel,
        socket_factory=socket_factory,
    )
    secondary_secret = settings.secondary_secret_encrypted
    if _is_authoritative(primary) or not settings.has_secondary or secondary_secret is None:
        return primary

    logger.warning(
        "Primary RADIUS server failed, trying secondary",
        event="radius.failover.secondary",
        primary_code=primary.code.value,
        radius_server=f"{settings.secondary_host}:{settings.secondary_port or DEFAULT_AUTH_PORT}",
    )
    return await _attempt(
        settings,
        SECONDARY,
        secondary_secret,
        username,
        password,
        decrypt=decrypt,
        cancel=cancel,
        socket_factory=socket_factory,
    )


__all__ = ["authenticate_with_failover", "PRIMARY", "SECONDARY"]
