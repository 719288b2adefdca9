"""
RADIUS client package: packet codec, UDP transport, login service and
primary/secondary failover.
"""

from .client import RadiusAuthService
from .failover import authenticate_with_failover
from .groups import extract_groups
from .packet import RADIUSAttribute, RADIUSPacket, VendorSpecificAttribute
from .results import AuthResult, AuthResultCode
from .transport import TransportResult, UDPTransport

__all__ = [
    "AuthResult",
    "AuthResultCode",
    "RADIUSAttribute",
    "RADIUSPacket",
    "VendorSpecificAttribute",
    "RadiusAuthService",
    "TransportResult",
    "UDPTransport",
    "authenticate_with_failover",
    "extract_groups",
]
