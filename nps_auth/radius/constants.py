"""RADIUS Protocol Constants.

Packet codes and attribute numbers from RFC 2865 (Authentication), the
Message-Authenticator from RFC 3579, and the Microsoft vendor attributes
from RFC 2548 that carry MS-CHAPv2 inside RADIUS. Only the subset this
client sends or interprets is listed; accounting is not supported.
"""

# Packet Codes (RFC 2865 §4.1)
RADIUS_ACCESS_REQUEST = 1  #: Access-Request packet code
RADIUS_ACCESS_ACCEPT = 2  #: Access-Accept packet code
RADIUS_ACCESS_REJECT = 3  #: Access-Reject packet code
RADIUS_ACCESS_CHALLENGE = 11  #: Access-Challenge packet code

CODE_NAMES = {
    RADIUS_ACCESS_REQUEST: "Access-Request",
    RADIUS_ACCESS_ACCEPT: "Access-Accept",
    RADIUS_ACCESS_REJECT: "Access-Reject",
    RADIUS_ACCESS_CHALLENGE: "Access-Challenge",
}

# Packet limits
RADIUS_HEADER_LENGTH = 20
MAX_RADIUS_PACKET_LENGTH = 4096  # RFC 2865 maximum
MAX_ATTRIBUTE_VALUE_LENGTH = 253
AUTHENTICATOR_LENGTH = 16

# Standard Attribute Types (RFC 2865 §5)
ATTR_USER_NAME = 1
ATTR_USER_PASSWORD = 2
ATTR_NAS_IP_ADDRESS = 4
ATTR_NAS_PORT = 5
ATTR_SERVICE_TYPE = 6
ATTR_FILTER_ID = 11
ATTR_REPLY_MESSAGE = 18
ATTR_STATE = 24
ATTR_CLASS = 25
ATTR_VENDOR_SPECIFIC = 26
ATTR_SESSION_TIMEOUT = 27
ATTR_IDLE_TIMEOUT = 28
ATTR_NAS_IDENTIFIER = 32
ATTR_NAS_PORT_TYPE = 61
ATTR_MESSAGE_AUTHENTICATOR = 80

# Service Types (RFC 2865 §5.6)
SERVICE_TYPE_FRAMED = 2

# NAS Port Types (RFC 2865 §5.41)
NAS_PORT_TYPE_ETHERNET = 15

# Vendor IDs (RFC 2865 §5.26)
VENDOR_CISCO = 9
VENDOR_MICROSOFT = 311
VENDOR_FORTINET = 12356
VENDOR_PALO_ALTO = 25461

# Microsoft VSA Attribute Types (RFC 2548, Vendor-Id: 311)
MS_CHAP_ERROR = 2
MS_MPPE_ENCRYPTION_POLICY = 7
MS_MPPE_ENCRYPTION_TYPES = 8
MS_CHAP_CHALLENGE = 11
MS_MPPE_SEND_KEY = 16
MS_MPPE_RECV_KEY = 17
MS_CHAP2_RESPONSE = 25
MS_CHAP2_SUCCESS = 26

# Cisco VSA Attribute Types (Vendor-Id: 9)
CISCO_AVPAIR = 1
