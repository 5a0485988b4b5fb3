"""
SWIFTNAV-V1 HMAC-SHA-512 request signer

This module ties the pipeline together: stamp the request with the date
header, canonicalize it, HMAC the canonical bytes with the shared secret and
assemble the Authorization header value.
"""

import dataclasses
import logging
from typing import Optional

from ..crypto.hmac_sha512 import hmac_sha512_hex
from .canonical_message import build_canonical_request
from .constants import DATE_HEADER, SCHEME
from .headers import HeaderList
from .types import (
    Credentials,
    RequestDescriptor,
    SignedArtifact,
    SigningError,
    SigningErrorCodes,
)
from .utils import format_timestamp, validate_timestamp

logger = logging.getLogger(__name__)


def build_authorization_header(token: str, digest: str, scheme: str = SCHEME) -> str:
    """
    Assemble the Authorization header value.

    Returns:
        str: ``<scheme> <token>:<digest>``
    """
    return f"{scheme} {token}:{digest}"


def stamp_date(descriptor: RequestDescriptor, timestamp: str) -> RequestDescriptor:
    """
    Return a copy of ``descriptor`` whose date header is ``timestamp``.

    Any date header already present is replaced rather than duplicated.
    """
    headers = HeaderList(descriptor.headers)
    headers.set(DATE_HEADER, timestamp)
    return dataclasses.replace(descriptor, headers=headers.items())


class HmacSigner:
    """
    HMAC-SHA-512 signer for one set of credentials

    A signer holds no per-request state, so one instance can sign any number
    of requests from any thread.
    """

    def __init__(self, credentials: Optional[Credentials] = None, scheme: str = SCHEME):
        """
        Initialize the signer.

        Args:
            credentials: Token and secret; incomplete credentials produce
                unsigned artifacts
            scheme: Scheme identifier written into the Authorization header
        """
        self.credentials = credentials or Credentials()
        self.scheme = scheme

    def sign(
        self,
        descriptor: RequestDescriptor,
        timestamp: Optional[str] = None
    ) -> SignedArtifact:
        """
        Sign a request.

        Args:
            descriptor: Request to sign
            timestamp: Date header value (defaults to now)

        Returns:
            SignedArtifact: date and, when credentials are complete, the
            Authorization value and the canonical request that was signed

        Raises:
            SigningError: If the timestamp is malformed or canonicalization fails
        """
        if timestamp is None:
            timestamp = format_timestamp()
        elif not validate_timestamp(timestamp):
            raise SigningError(
                f"Invalid timestamp: {timestamp}",
                SigningErrorCodes.INVALID_TIMESTAMP,
                {"timestamp": timestamp, "expected_format": "YYYY-MM-DDTHH:MM:SS+HHMM"}
            )

        if not self.credentials.is_complete:
            return SignedArtifact(date=timestamp)

        stamped = stamp_date(descriptor, timestamp)
        canonical = build_canonical_request(stamped)
        digest = hmac_sha512_hex(self.credentials.secret, canonical)
        authorization = build_authorization_header(self.credentials.token, digest, self.scheme)

        logger.debug(
            f"Signed {stamped.method} {stamped.path} on {stamped.host}:{stamped.port} "
            f"with token {self.credentials.token}"
        )

        return SignedArtifact(
            date=timestamp,
            authorization=authorization,
            canonical_request=canonical,
        )


def create_signer(credentials: Optional[Credentials] = None) -> HmacSigner:
    """
    Create a new HMAC signer.

    Args:
        credentials: Token and secret

    Returns:
        HmacSigner: Configured signer instance
    """
    return HmacSigner(credentials)


def sign_request(
    descriptor: RequestDescriptor,
    credentials: Optional[Credentials],
    timestamp: Optional[str] = None
) -> SignedArtifact:
    """
    Sign a request with the given credentials.

    Args:
        descriptor: Request to sign
        credentials: Token and secret
        timestamp: Optional date header value

    Returns:
        SignedArtifact: Signing result
    """
    return create_signer(credentials).sign(descriptor, timestamp)
