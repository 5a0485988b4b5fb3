"""
Cryptographic operations for skylark-curl
"""

from .hmac_sha512 import (
    HMAC_SHA512_HEX_LENGTH,
    hmac_sha512,
    hmac_sha512_hex,
    verify_hmac_sha512,
)

from .storage import (
    CredentialStore,
    StorageMetadata,
    get_default_store,
    STORAGE_SERVICE_NAME,
)

__all__ = [
    'HMAC_SHA512_HEX_LENGTH',
    'hmac_sha512',
    'hmac_sha512_hex',
    'verify_hmac_sha512',
    'CredentialStore',
    'StorageMetadata',
    'get_default_store',
    'STORAGE_SERVICE_NAME',
]
