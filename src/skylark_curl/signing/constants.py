"""
Header names and scheme identifiers shared by every signing mode.
"""

# Versioned algorithm identifier; bump when canonicalization changes.
SCHEME = "SWIFTNAV-V1-PRF-HMAC-SHA-512"

SIGNED_HEADER_PREFIX = "x-swiftnav"

DATE_HEADER = "X-SwiftNav-Date"
AUTH_HEADER = "Authorization"
HOST_HEADER = "Host"

PROXY_HEADER_PREFIX = "X-SwiftNav-Proxy-"
TOKEN_HEADER = "X-SwiftNav-Proxy-Token"
SECRET_HEADER = "X-SwiftNav-Proxy-Secret"

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

DEFAULT_METHOD = "GET"
DEFAULT_PORTS = {"http": 80, "https": 443}

# HMAC-SHA-512 rendered as hex
DIGEST_HEX_LENGTH = 128
