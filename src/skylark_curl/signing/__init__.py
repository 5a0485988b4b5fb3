"""
skylark-curl - Request Signing Module

SWIFTNAV-V1 HMAC-SHA-512 request signing. This module canonicalizes HTTP
requests, signs them with a shared secret and produces the Authorization
header expected by Skylark endpoints.
"""

from .constants import (
    SCHEME,
    SIGNED_HEADER_PREFIX,
    DATE_HEADER,
    AUTH_HEADER,
    HOST_HEADER,
    PROXY_HEADER_PREFIX,
    TOKEN_HEADER,
    SECRET_HEADER,
)

from .types import (
    RequestDescriptor,
    Credentials,
    SignedArtifact,
    VerificationResult,
    SigningError,
    SigningErrorCodes,
)

from .headers import HeaderList

from .canonical_message import (
    CanonicalRequestBuilder,
    build_canonical_request,
    canonicalize_headers,
    canonicalize_query,
)

from .signer import (
    HmacSigner,
    build_authorization_header,
    create_signer,
    sign_request,
)

from .verifier import (
    HmacVerifier,
    create_verifier,
    parse_authorization_header,
)

from .extractors import (
    descriptor_from_curl_args,
    descriptor_from_inbound,
    extract_credentials,
    lookup_arg,
    lookup_all_args,
)

from .utils import (
    UrlParts,
    parse_url,
    parse_query,
    format_timestamp,
    validate_timestamp,
)

from .integration import (
    SigningSession,
    create_signing_session,
    sign_prepared_request,
)

# Public API exports
__all__ = [
    # Constants
    'SCHEME',
    'SIGNED_HEADER_PREFIX',
    'DATE_HEADER',
    'AUTH_HEADER',
    'HOST_HEADER',
    'PROXY_HEADER_PREFIX',
    'TOKEN_HEADER',
    'SECRET_HEADER',
    # Types
    'RequestDescriptor',
    'Credentials',
    'SignedArtifact',
    'VerificationResult',
    'SigningError',
    'SigningErrorCodes',
    'HeaderList',
    # Canonicalization and signing
    'CanonicalRequestBuilder',
    'build_canonical_request',
    'canonicalize_headers',
    'canonicalize_query',
    'HmacSigner',
    'build_authorization_header',
    'create_signer',
    'sign_request',
    # Verification
    'HmacVerifier',
    'create_verifier',
    'parse_authorization_header',
    # Extraction
    'descriptor_from_curl_args',
    'descriptor_from_inbound',
    'extract_credentials',
    'lookup_arg',
    'lookup_all_args',
    # Utilities
    'UrlParts',
    'parse_url',
    'parse_query',
    'format_timestamp',
    'validate_timestamp',
    # HTTP Integration
    'SigningSession',
    'create_signing_session',
    'sign_prepared_request',
]
