"""
nps_auth: RADIUS / MS-CHAPv2 login client for Windows NPS.
"""

from nps_auth.auth.radius_auth import RADIUSAuthBackend
from nps_auth.config.schema import RadiusServerConfig, RadiusSettings
from nps_auth.radius.client import RadiusAuthService
from nps_auth.radius.failover import authenticate_with_failover
from nps_auth.radius.results import AuthResult, AuthResultCode

__version__ = "1.0.0"

__all__ = [
    "AuthResult",
    "AuthResultCode",
    "RADIUSAuthBackend",
    "RadiusAuthService",
    "RadiusServerConfig",
    "RadiusSettings",
    "authenticate_with_failover",
]
