"""
Signature verification for SWIFTNAV-V1 HMAC signatures

The receiving side of the protocol: recompute the canonical request for an
incoming request and compare the digest with the one in its Authorization
header.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from ..crypto.hmac_sha512 import verify_hmac_sha512
from .canonical_message import build_canonical_request
from .constants import DATE_HEADER, SCHEME, TIMESTAMP_FORMAT
from .headers import HeaderList
from .types import RequestDescriptor, SigningError, VerificationResult

logger = logging.getLogger(__name__)

SecretLookup = Callable[[str], Optional[str]]


def parse_authorization_header(value: str) -> Optional[Tuple[str, str, str]]:
    """
    Split ``<scheme> <token>:<digest>`` into its parts.

    Returns:
        tuple or None if the value does not have that shape
    """
    if not value:
        return None
    scheme, _, credential = value.strip().partition(" ")
    token, sep, digest = credential.rpartition(":")
    if not scheme or not sep or not token or not digest:
        return None
    return scheme, token, digest


class HmacVerifier:
    """
    Verifier for requests signed with a shared secret
    """

    def __init__(
        self,
        secret_lookup: SecretLookup,
        max_clock_skew_seconds: Optional[int] = None,
        scheme: str = SCHEME
    ):
        """
        Args:
            secret_lookup: Maps a token id to its secret, None when unknown
            max_clock_skew_seconds: Reject requests whose date header is
                further than this from now; None disables the check
            scheme: Accepted scheme identifier
        """
        self.secret_lookup = secret_lookup
        self.max_clock_skew_seconds = max_clock_skew_seconds
        self.scheme = scheme

    def verify(self, descriptor: RequestDescriptor, authorization: Optional[str]) -> VerificationResult:
        """
        Verify the Authorization header of a received request.

        Args:
            descriptor: The request as received, including its date header
            authorization: Authorization header value

        Returns:
            VerificationResult: valid flag, token and a reason on failure
        """
        parsed = parse_authorization_header(authorization or "")
        if parsed is None:
            return VerificationResult(valid=False, reason="malformed authorization header")

        scheme, token, digest = parsed
        if scheme != self.scheme:
            return VerificationResult(valid=False, token=token, reason=f"unsupported scheme {scheme}")

        secret = self.secret_lookup(token)
        if not secret:
            return VerificationResult(valid=False, token=token, reason="unknown token")

        date = HeaderList(descriptor.headers).get(DATE_HEADER)
        if date is None:
            return VerificationResult(valid=False, token=token, reason=f"missing {DATE_HEADER} header")

        if self.max_clock_skew_seconds is not None and not self._is_fresh(date):
            return VerificationResult(valid=False, token=token, reason="stale or unparseable date")

        try:
            canonical = build_canonical_request(descriptor)
        except SigningError as e:
            return VerificationResult(valid=False, token=token, reason=e.message)

        if not verify_hmac_sha512(secret, canonical, digest.lower()):
            logger.warning(f"Signature mismatch for token {token}")
            return VerificationResult(valid=False, token=token, reason="signature mismatch")

        return VerificationResult(valid=True, token=token)

    def _is_fresh(self, date: str) -> bool:
        try:
            signed_at = datetime.strptime(date, TIMESTAMP_FORMAT)
        except ValueError:
            return False
        skew = abs((datetime.now(timezone.utc) - signed_at).total_seconds())
        return skew <= self.max_clock_skew_seconds


def create_verifier(secret_lookup: SecretLookup, max_clock_skew_seconds: Optional[int] = None) -> HmacVerifier:
    """Create a verifier backed by ``secret_lookup``."""
    return HmacVerifier(secret_lookup, max_clock_skew_seconds)
