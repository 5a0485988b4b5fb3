"""
HMAC-SHA-512 engine for skylark-curl

Keyed hashing over canonical requests using the cryptography package. The
digest is rendered as lowercase hex so it can be dropped straight into the
Authorization header.
"""

from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

from ..exceptions import ValidationError

# Constants for HMAC-SHA-512 operations
HMAC_SHA512_DIGEST_LENGTH = 64
HMAC_SHA512_HEX_LENGTH = HMAC_SHA512_DIGEST_LENGTH * 2

KeyMaterial = Union[str, bytes]
Message = Union[str, bytes]


def _to_bytes(value: Union[str, bytes], what: str) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode('utf-8')
    raise ValidationError(
        f"{what} must be string or bytes, got {type(value)}",
        "INVALID_HMAC_INPUT"
    )


def hmac_sha512(secret: KeyMaterial, message: Message) -> bytes:
    """
    Compute the raw HMAC-SHA-512 of ``message`` keyed with ``secret``.

    Args:
        secret: Shared secret (text is UTF-8 encoded)
        message: Message to authenticate (text is UTF-8 encoded)

    Returns:
        bytes: 64 byte digest
    """
    h = hmac.HMAC(_to_bytes(secret, "Secret"), hashes.SHA512())
    h.update(_to_bytes(message, "Message"))
    return h.finalize()


def hmac_sha512_hex(secret: KeyMaterial, message: Message) -> str:
    """
    Compute HMAC-SHA-512 as lowercase hex.

    Args:
        secret: Shared secret
        message: Message to authenticate

    Returns:
        str: 128 character lowercase hex digest
    """
    return hmac_sha512(secret, message).hex()


def verify_hmac_sha512(secret: KeyMaterial, message: Message, expected_hex: str) -> bool:
    """
    Check a hex digest against ``message`` in constant time.

    Returns:
        bool: True if the digest matches, False for a mismatch or a malformed
        hex string
    """
    if not isinstance(expected_hex, str) or len(expected_hex) != HMAC_SHA512_HEX_LENGTH:
        return False
    try:
        expected = bytes.fromhex(expected_hex)
    except ValueError:
        return False

    h = hmac.HMAC(_to_bytes(secret, "Secret"), hashes.SHA512())
    h.update(_to_bytes(message, "Message"))
    try:
        h.verify(expected)
    except InvalidSignature:
        return False
    return True
