"""
RADIUS Authentication Backend for the administrative login path

This backend authenticates staff credentials against an external Windows
NPS/RADIUS server (RFC 2865, MS-CHAPv2 by default) instead of a local
password store, with automatic failover to a secondary server. On a
successful login it extracts authorization groups from the Access-Accept
and caches them for downstream authorization checks.

Configuration (section: [radius], see nps_auth.config.loader):
  - primary_host / primary_port    (required / default 1812)
  - shared_secret                  (required; plain or AES-GCM encrypted)
  - secondary_host / secondary_port / secondary_secret  (optional)
  - nas_identifier                 (default: LinkMonitor)
  - timeout_ms                     (default: 5000) per attempt
  - max_retries                    (default: 3) datagrams per server
  - auth_method                    (default: mschapv2; or pap)
  - group_cache_ttl                (default: 600) seconds

Groups extraction (see nps_auth.radius.groups):
  - Filter-Id values, Class (LDAP DN CN or "group:" prefix),
    vendor string attributes, Reply-Message "Group:" lines

Groups are cached on successful authentication and returned by
get_user_attributes(username).
"""

import asyncio
import socket
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from nps_auth.config.loader import settings_from_mapping
from nps_auth.config.schema import RadiusSettings
from nps_auth.radius.client import RadiusAuthService
from nps_auth.radius.failover import authenticate_with_failover
from nps_auth.radius.results import AuthResult, AuthResultCode
from nps_auth.radius.transport import SocketFactory
from nps_auth.utils.logger import get_logger
from nps_auth.utils.secret_store import decrypt_secret
from nps_auth.utils.simple_cache import TTLCache

from .base import AuthenticationBackend

logger = get_logger(__name__)


class RADIUSAuthBackend(AuthenticationBackend):
    """RADIUS (NPS) authentication backend"""

    def __init__(
        self,
        cfg: RadiusSettings | Mapping[str, Any],
        *,
        decrypt: Callable[[str], str] = decrypt_secret,
        socket_factory: SocketFactory | None = None,
    ):
        """
        Initialize RADIUS backend

        Args:
            cfg: validated RadiusSettings, or a mapping of [radius] INI keys
            decrypt: collaborator turning stored secrets into plaintext
            socket_factory: UDP socket constructor (tests)

        Raises:
            ConfigValidationError: invalid mapping configuration
        """
        super().__init__("radius")

        if isinstance(cfg, RadiusSettings):
            self.settings = cfg
            group_cache_ttl: Any = 600
        else:
            self.settings = settings_from_mapping(cfg)
            group_cache_ttl = cfg.get("group_cache_ttl", 600)

        self._decrypt = decrypt
        self._socket_factory = socket_factory

        try:
            self._group_cache_ttl = int(group_cache_ttl)
        except (TypeError, ValueError):
            self._group_cache_ttl = 600
        # Key: username, Value: list of group names
        self._cached_groups: TTLCache[str, list[str]] = TTLCache(
            ttl_seconds=self._group_cache_ttl,
            maxsize=10_000,
        )
        self._stats: dict[str, Any] = {
            "total": 0,
            "accepted": 0,
            "rejected": 0,
            "errors": 0,
            "failovers": 0,
            "last_code": None,
        }

        logger.debug(
            "Initialized RADIUS backend",
            event="radius.backend.initialized",
            service="radius",
            radius_server=f"{self.settings.primary_host}:{self.settings.primary_port}",
            secondary=self.settings.secondary_host,
        )

    async def authenticate_async(
        self,
        username: str,
        password: str,
        *,
        cancel: asyncio.Event | None = None,
    ) -> AuthResult:
        """Authenticate with failover and return the full result."""
        if not username or not password:
            return AuthResult(
                success=False,
                message="Username and password are required",
                code=AuthResultCode.ENCODE_ERROR,
            )

        result = await authenticate_with_failover(
            self.settings,
            username,
            password,
            decrypt=self._decrypt,
            cancel=cancel,
            socket_factory=self._socket_factory,
        )
        self._record(username, result)
        return result

    def _record(self, username: str, result: AuthResult) -> None:
        self._stats["total"] += 1
        self._stats["last_code"] = result.code.value
        if result.used_server == "secondary":
            self._stats["failovers"] += 1
        if result.success:
            self._stats["accepted"] += 1
            self._cached_groups.set(username, list(result.groups))
        elif result.code is AuthResultCode.ACCESS_REJECT:
            self._stats["rejected"] += 1
            self._cached_groups.pop(username)
        else:
            self._stats["errors"] += 1

    def authenticate(self, username: str, password: str, **kwargs) -> bool:
        """Authenticate user against RADIUS and cache groups for authorization."""
        coro = self.authenticate_async(username, password)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            result = asyncio.run(coro)
        else:
            # called from inside an event loop: run on a private loop in a worker
            with ThreadPoolExecutor(max_workers=1) as pool:
                result = pool.submit(asyncio.run, coro).result()
        return result.success

    async def test_connection(self) -> AuthResult:
        """Health check against the primary server."""
        try:
            secret = self._decrypt(self.settings.shared_secret_encrypted)
            config = self.settings.server_config("primary", secret)
        except Exception as exc:
            return AuthResult(
                success=False,
                message=f"RADIUS primary server configuration error: {type(exc).__name__}",
                code=AuthResultCode.CONFIG_ERROR,
                used_server="primary",
            )
        service = RadiusAuthService(config, socket_factory=self._socket_factory)
        result = await service.test_connection()
        result.used_server = "primary"
        return result

    def get_user_attributes(self, username: str) -> dict[str, Any]:
        """
        Get user attributes from RADIUS

        Note: RADIUS doesn't support querying without authentication.
        Groups are cached during authentication.
        """
        cached_groups = self._cached_groups.get(username) or []
        return {
            "groups": list(cached_groups),
            "enabled": True,
        }

    def is_available(self) -> bool:
        """Check that the primary server address resolves and is routable"""
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.settimeout(2)
                sock.connect((self.settings.primary_host, self.settings.primary_port))
            return True
        except (OSError, UnicodeError):
            return False

    def get_stats(self) -> dict[str, Any]:
        """Get backend statistics"""
        return {
            "radius_server": self.settings.primary_host,
            "radius_port": self.settings.primary_port,
            "secondary_server": self.settings.secondary_host,
            "auth_method": self.settings.auth_method,
            "timeout_ms": self.settings.timeout_ms,
            "max_retries": self.settings.max_retries,
            "cached_users": len(self._cached_groups),
            **self._stats,
        }
